"""Shared test fixtures."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.main import create_app
from src.pm_engine.context import WageringContext, build_memory_context
from src.pm_engine.engine.lifecycle import MarketLifecycleController
from tests.helpers import ADMIN_KEY, STARTING_GOLD, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context(clock: FakeClock) -> WageringContext:
    return build_memory_context(balances=STARTING_GOLD, clock=clock)


@pytest.fixture
def controller(context: WageringContext) -> MarketLifecycleController:
    return context.controller


@pytest.fixture
def app(context: WageringContext) -> FastAPI:
    return create_app(context=context, admin_api_key=ADMIN_KEY)


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
