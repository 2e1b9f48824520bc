"""Prediction market REST + WebSocket endpoints.

GET  /predictions/markets                      browse with filters, sort, paging
GET  /predictions/markets/{market_id}          detail with recent bets + odds history
GET  /predictions/markets/{market_id}/preview  payout/slippage preview for a stake
POST /predictions/bet                          place a bet
POST /predictions/claim                        claim payouts or refunds on one market
GET  /predictions/my-bets/{bettor_id}          a bettor's bets, oldest first
GET  /predictions/stats/{bettor_id}            player stats
GET  /predictions/leaderboard                  top bettors
GET  /predictions/stats                        platform-wide stats
WS   /predictions/ws                           real-time odds and market events
"""

import asyncio
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect

from src.pm_common.enums import MarketSortKey, MarketType, SortOrder
from src.pm_common.errors import MalformedPayloadError
from src.pm_common.response import ApiResponse, error_response, success_response
from src.pm_engine.context import WageringContext
from src.pm_engine.events.models import Event, decode_subscription
from src.pm_engine.events.subscription import FeedSubscription
from src.pm_gateway.auth.dependencies import get_service
from src.pm_market.application.schemas import ClaimRequest, MarketFilters, PlaceBetRequest
from src.pm_market.application.service import PredictionApplicationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictions", tags=["predictions"])

Service = Annotated[PredictionApplicationService, Depends(get_service)]


def _ok(request: Request, data: Any) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/markets")
async def list_markets(
    request: Request,
    service: Service,
    status: str | None = Query(
        None, description="Filter by status. Default: ACTIVE. Use ALL for no filter."
    ),
    market_type: MarketType | None = Query(None),
    featured: bool | None = Query(None),
    min_pool: int | None = Query(None, ge=0),
    search: str | None = Query(None, max_length=200),
    sort_by: MarketSortKey = Query(MarketSortKey.DEADLINE),
    sort_order: SortOrder | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    filters = MarketFilters(
        status=status.upper() if status else None,
        market_type=market_type,
        featured=featured,
        min_pool=min_pool,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return _ok(request, service.list_markets(filters).model_dump(mode="json"))


@router.get("/markets/{market_id}")
async def get_market(market_id: int, request: Request, service: Service) -> ApiResponse:
    return _ok(request, service.get_market_detail(market_id).model_dump(mode="json"))


@router.get("/markets/{market_id}/preview")
async def preview_bet(
    market_id: int,
    request: Request,
    service: Service,
    outcome_index: int = Query(...),
    amount: int = Query(...),
) -> ApiResponse:
    result = service.preview_bet(market_id, outcome_index, amount)
    return _ok(request, result.model_dump(mode="json"))


@router.post("/bet")
async def place_bet(body: PlaceBetRequest, request: Request, service: Service) -> ApiResponse:
    result = await service.place_bet(body)
    return _ok(request, result.model_dump(mode="json"))


@router.post("/claim")
async def claim(body: ClaimRequest, request: Request, service: Service) -> ApiResponse:
    result = await service.claim(body)
    return _ok(request, result.model_dump(mode="json"))


@router.get("/my-bets/{bettor_id}")
async def my_bets(bettor_id: str, request: Request, service: Service) -> ApiResponse:
    bets = service.bets_for_bettor(bettor_id)
    return _ok(request, [b.model_dump(mode="json") for b in bets])


@router.get("/stats/{bettor_id}")
async def player_stats(bettor_id: str, request: Request, service: Service) -> ApiResponse:
    return _ok(request, service.player_stats(bettor_id).model_dump(mode="json"))


@router.get("/leaderboard")
async def leaderboard(
    request: Request,
    service: Service,
    limit: int = Query(10, ge=1, le=100),
) -> ApiResponse:
    entries = service.leaderboard(limit)
    return _ok(request, [e.model_dump(mode="json") for e in entries])


@router.get("/stats")
async def platform_stats(request: Request, service: Service) -> ApiResponse:
    return _ok(request, service.platform_stats().model_dump(mode="json"))


# ---------------------------------------------------------------------------
# WebSocket feed
# ---------------------------------------------------------------------------


async def _forward(
    websocket: WebSocket,
    queue: asyncio.Queue[Event],
    sub: FeedSubscription,
    send_lock: asyncio.Lock,
) -> None:
    while True:
        event = await queue.get()
        if not sub.wants(event):
            continue
        async with send_lock:
            await websocket.send_text(event.model_dump_json())


async def _receive(websocket: WebSocket, sub: FeedSubscription, send_lock: asyncio.Lock) -> None:
    while True:
        raw = await websocket.receive_text()
        try:
            sub.apply(decode_subscription(raw))
            reply: dict[str, Any] = sub.describe()
        except MalformedPayloadError as exc:
            reply = error_response(exc.code, exc.message).model_dump()
        async with send_lock:
            await websocket.send_json(reply)


@router.websocket("/ws")
async def prediction_feed(websocket: WebSocket) -> None:
    """Serve one feed connection until the client leaves or a send fails."""
    context: WageringContext = websocket.app.state.context
    await websocket.accept()
    queue = context.bus.subscribe()
    sub = FeedSubscription()
    send_lock = asyncio.Lock()
    receiver = asyncio.create_task(_receive(websocket, sub, send_lock))
    forwarder = asyncio.create_task(_forward(websocket, queue, sub, send_lock))
    try:
        done, _ = await asyncio.wait({receiver, forwarder}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        receiver.cancel()
        forwarder.cancel()
        await asyncio.gather(receiver, forwarder, return_exceptions=True)
        context.bus.unsubscribe(queue)

    for task in done:
        exc = task.exception()
        if isinstance(exc, WebSocketDisconnect):
            logger.debug("Feed client disconnected")
        elif exc is not None:
            logger.warning("Feed connection closed after error: %r", exc)
