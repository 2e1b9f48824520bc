# tests/integration/test_prediction_api.py
"""End-to-end tests for the prediction and admin endpoints.

Runs against an in-memory context injected into the app; no database or
Redis is required.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient
from starlette.testclient import TestClient

from src.main import create_app
from src.pm_engine.context import build_memory_context
from src.pm_market.api.router import prediction_feed
from tests.helpers import ADMIN_KEY, DEADLINE, STARTING_GOLD, T0, FakeClock, open_market

ADMIN = {"X-Admin-Key": ADMIN_KEY}

MARKET_BODY = {
    "question": "Will the guild reach rank 1 this season?",
    "outcomes": ["Yes", "No"],
    "betting_deadline": DEADLINE.isoformat(),
    "resolution_time": DEADLINE.isoformat(),
    "tags": ["guild"],
}


async def _create_market(client: AsyncClient, **overrides: object) -> int:
    resp = await client.post("/api/v1/admin/markets", json={**MARKET_BODY, **overrides}, headers=ADMIN)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["id"]


async def _bet(client: AsyncClient, market_id: int, outcome: int, amount: int, bettor: str):
    return await client.post("/api/v1/predictions/bet", json={
        "market_id": market_id, "outcome_index": outcome, "amount": amount, "bettor_id": bettor,
    })


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestAdminAuth:
    async def test_missing_key(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/admin/markets", json=MARKET_BODY)
        assert resp.status_code == 403
        assert resp.json()["code"] == 9004

    async def test_wrong_key(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/admin/markets", json=MARKET_BODY, headers={"X-Admin-Key": "nope"}
        )
        assert resp.status_code == 403

    async def test_unconfigured_key_rejects_everything(self) -> None:
        from httpx import ASGITransport

        app = create_app(context=build_memory_context(), admin_api_key="")
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.post("/api/v1/admin/markets", json=MARKET_BODY, headers={"X-Admin-Key": ""})
        assert resp.status_code == 403


class TestMarketFlow:
    async def test_full_lifecycle(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)

        resp = await _bet(client, market_id, 0, 100, "alice")
        assert resp.status_code == 200
        assert resp.json()["data"]["new_odds"] == [10_000, 0]

        resp = await _bet(client, market_id, 1, 300, "bob")
        data = resp.json()["data"]
        assert data["new_odds"] == [40_000, 13_333]
        assert data["balance_after"] == STARTING_GOLD["bob"] - 300

        resp = await client.post(
            f"/api/v1/admin/markets/{market_id}/resolve", json={"winning_outcome": 1}, headers=ADMIN
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["house_fee"] == 20

        resp = await client.post("/api/v1/predictions/claim", json={"market_id": market_id, "bettor_id": "bob"})
        assert resp.json()["data"]["payout"] == 380

        resp = await client.post("/api/v1/predictions/claim", json={"market_id": market_id, "bettor_id": "bob"})
        assert resp.json()["data"]["payout"] == 0

    async def test_list_and_detail(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        await _bet(client, market_id, 0, 100, "alice")

        resp = await client.get("/api/v1/predictions/markets")
        data = resp.json()["data"]
        assert data["total"] == 1
        assert data["markets"][0]["odds_display"] == ["1.00x", "-"]

        resp = await client.get(f"/api/v1/predictions/markets/{market_id}")
        detail = resp.json()["data"]
        assert detail["market"]["tags"] == ["guild"]
        assert detail["recent_bets"][0]["bettor_id"] == "alice"

    async def test_preview(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        await _bet(client, market_id, 0, 100, "alice")
        await _bet(client, market_id, 1, 300, "bob")

        resp = await client.get(
            f"/api/v1/predictions/markets/{market_id}/preview",
            params={"outcome_index": 0, "amount": 100},
        )
        assert resp.json()["data"]["payout"] == 237

    async def test_preview_invalid_outcome(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        for index in (-1, 2):
            resp = await client.get(
                f"/api/v1/predictions/markets/{market_id}/preview",
                params={"outcome_index": index, "amount": 100},
            )
            assert resp.status_code == 422
            assert resp.json()["code"] == 1001

    async def test_cancel_then_refund(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        await _bet(client, market_id, 0, 100, "alice")
        resp = await client.post(f"/api/v1/admin/markets/{market_id}/cancel", headers=ADMIN)
        assert resp.json()["data"]["status"] == "CANCELLED"

        resp = await client.post("/api/v1/predictions/claim", json={"market_id": market_id, "bettor_id": "alice"})
        assert resp.json()["data"]["payout"] == 100
        assert resp.json()["data"]["balance_after"] == STARTING_GOLD["alice"]

    async def test_stats_endpoints(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        await _bet(client, market_id, 1, 300, "bob")
        await client.post(
            f"/api/v1/admin/markets/{market_id}/resolve", json={"winning_outcome": 1}, headers=ADMIN
        )

        assert (await client.get("/api/v1/predictions/stats/bob")).json()["data"]["accuracy"] == 100.0
        board = (await client.get("/api/v1/predictions/leaderboard")).json()["data"]
        assert board[0]["bettor_id"] == "bob"
        platform = (await client.get("/api/v1/predictions/stats")).json()["data"]
        assert platform["total_volume"] == 300
        my_bets = (await client.get("/api/v1/predictions/my-bets/bob")).json()["data"]
        assert my_bets[0]["won"] is True

    async def test_credit_gold(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/admin/balances/newbie/credit", json={"amount": 1000}, headers=ADMIN
        )
        assert resp.json()["data"] == {"bettor_id": "newbie", "balance": 1000}


class TestErrors:
    async def test_unknown_market(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/predictions/markets/404")
        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == 3001
        assert body["data"] is None

    async def test_bet_too_small(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        resp = await _bet(client, market_id, 0, 5, "alice")
        assert resp.status_code == 422
        assert resp.json()["code"] == 1002

    async def test_insufficient_balance(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        resp = await _bet(client, market_id, 0, 100, "broke")
        assert resp.json()["code"] == 2001

    async def test_claim_before_resolution(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        resp = await client.post("/api/v1/predictions/claim", json={"market_id": market_id, "bettor_id": "bob"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 3004

    async def test_resolve_twice(self, client: AsyncClient) -> None:
        market_id = await _create_market(client)
        url = f"/api/v1/admin/markets/{market_id}/resolve"
        await client.post(url, json={"winning_outcome": 0}, headers=ADMIN)
        resp = await client.post(url, json={"winning_outcome": 1}, headers=ADMIN)
        assert resp.status_code == 409

    async def test_single_outcome_market(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/admin/markets", json={**MARKET_BODY, "outcomes": ["Only"]}, headers=ADMIN
        )
        assert resp.json()["code"] == 1004

    async def test_request_validation_envelope(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/predictions/bet", json={"market_id": 1})
        assert resp.status_code == 422
        assert resp.json()["data"] is None

    async def test_request_id_header(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/predictions/stats")
        assert resp.headers["X-Request-ID"] == resp.json()["request_id"]


class TestWebSocketFeed:
    def test_join_and_receive(self) -> None:
        context = build_memory_context(balances=STARTING_GOLD, clock=FakeClock(T0))
        app = create_app(context=context, admin_api_key=ADMIN_KEY)

        with TestClient(app) as client:
            with client.websocket_connect("/api/v1/predictions/ws") as ws:
                ws.send_json({"action": "join_active"})
                assert ws.receive_json() == {"type": "subscribed", "lobby": True, "market_ids": []}

                resp = client.post("/api/v1/admin/markets", json=MARKET_BODY, headers=ADMIN)
                market_id = resp.json()["data"]["id"]
                event = ws.receive_json()
                assert event["type"] == "new_market"
                assert event["market"]["id"] == market_id

                client.post("/api/v1/predictions/bet", json={
                    "market_id": market_id, "outcome_index": 0, "amount": 100, "bettor_id": "alice",
                })
                event = ws.receive_json()
                assert event["type"] == "odds_update"
                assert event["pools"] == [100, 0]

    def test_malformed_message(self) -> None:
        app = create_app(context=build_memory_context(), admin_api_key=ADMIN_KEY)
        with TestClient(app) as client:
            with client.websocket_connect("/api/v1/predictions/ws") as ws:
                ws.send_text('{"action": "dance"}')
                reply = ws.receive_json()
                assert reply["code"] == 1006

    async def test_failed_send_ends_feed(self, context) -> None:
        joined = asyncio.Event()

        async def receive_text() -> str:
            if not joined.is_set():
                joined.set()
                return '{"action": "join_active"}'
            await asyncio.Event().wait()
            return ""

        ws = MagicMock()
        ws.app.state.context = context
        ws.accept = AsyncMock()
        ws.send_json = AsyncMock()
        ws.send_text = AsyncMock(side_effect=RuntimeError("socket closed"))
        ws.receive_text = receive_text

        feed = asyncio.create_task(prediction_feed(ws))
        await joined.wait()
        await asyncio.sleep(0)
        await open_market(context.controller)

        await asyncio.wait_for(feed, timeout=1)
        ws.send_text.assert_awaited_once()
        assert context.bus.subscriber_count == 0
