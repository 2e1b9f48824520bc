"""FastAPI dependencies shared by the prediction and admin routers.

Usage in any admin router:
    from src.pm_gateway.auth.dependencies import require_admin

    @router.post("/markets", dependencies=[Depends(require_admin)])
    async def create(...): ...
"""

import hmac

from fastapi import Header, Request

from src.pm_common.errors import AdminAuthError
from src.pm_engine.context import WageringContext
from src.pm_market.application.service import PredictionApplicationService


def get_context(request: Request) -> WageringContext:
    return request.app.state.context


def get_service(request: Request) -> PredictionApplicationService:
    return get_context(request).service


async def require_admin(
    request: Request,
    x_admin_key: str | None = Header(None),
) -> None:
    """Reject the call unless X-Admin-Key matches the configured admin key.

    An empty configured key disables every admin endpoint.
    Raises HTTP 403 (AdminAuthError, code 9004).
    """
    expected: str = getattr(request.app.state, "admin_api_key", "")
    if not expected or not x_admin_key:
        raise AdminAuthError()
    if not hmac.compare_digest(x_admin_key.encode(), expected.encode()):
        raise AdminAuthError()
