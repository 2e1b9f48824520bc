"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from src.pm_admin.api.router import router as admin_router
from src.pm_common.errors import AppError, InternalError
from src.pm_common.response import error_response
from src.pm_engine.context import WageringContext, build_context
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_market.api.router import router as prediction_router

APP_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(
    context: WageringContext | None = None,
    admin_api_key: str | None = None,
) -> FastAPI:
    """Build the app. A pre-built context skips the settings-driven startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup: build context (DB rebuild, Redis relay). Shutdown: release them."""
        owned = getattr(app.state, "context", None) is None
        if owned:
            app.state.context = await build_context(settings)
        yield
        if owned:
            await app.state.context.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context
    app.state.admin_api_key = settings.ADMIN_API_KEY if admin_api_key is None else admin_api_key

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        resp = error_response(exc.code, exc.message)
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
        return JSONResponse(
            status_code=exc.http_status,
            content=resp.model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        resp = error_response(422, f"{loc}: {first.get('msg', 'invalid request')}")
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
        return JSONResponse(status_code=422, content=resp.model_dump())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        err = InternalError()
        return JSONResponse(
            status_code=err.http_status,
            content=error_response(err.code, err.message).model_dump(),
        )

    app.include_router(prediction_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": APP_VERSION}

    return app


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = create_app()
