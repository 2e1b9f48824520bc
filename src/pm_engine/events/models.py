"""Real-time event payloads and inbound subscription messages.

Both directions cross a trust boundary (Redis frames from other processes,
WebSocket frames from browsers), so decoding goes through a discriminated
union and fails with MalformedPayloadError rather than leaking half-parsed
dicts into the engine.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from src.pm_common.errors import MalformedPayloadError
from src.pm_market.application.schemas import MarketSnapshot


class LastBet(BaseModel):
    bettor_id: str
    amount: int
    outcome_index: int


class OddsUpdateEvent(BaseModel):
    type: Literal["odds_update"] = "odds_update"
    market_id: int
    pools: list[int]
    total_pool: int
    odds: list[int]
    last_bet: LastBet | None = None


class MarketResolvedEvent(BaseModel):
    type: Literal["market_resolved"] = "market_resolved"
    market_id: int
    winning_outcome: int
    winning_outcome_name: str
    payout_multiplier: int  # bps of net pool per unit staked on the winner
    total_paid_out: int


class MarketCancelledEvent(BaseModel):
    type: Literal["market_cancelled"] = "market_cancelled"
    market_id: int


class NewMarketEvent(BaseModel):
    type: Literal["new_market"] = "new_market"
    market: MarketSnapshot


class BigBetEvent(BaseModel):
    type: Literal["big_bet"] = "big_bet"
    market_id: int
    bettor_id: str
    amount: int
    outcome_index: int
    outcome_name: str


class BigWinEvent(BaseModel):
    type: Literal["big_win"] = "big_win"
    market_id: int
    bettor_id: str
    amount: int
    multiplier: int  # payout / stake in bps


Event = Annotated[
    Union[
        OddsUpdateEvent,
        MarketResolvedEvent,
        MarketCancelledEvent,
        NewMarketEvent,
        BigBetEvent,
        BigWinEvent,
    ],
    Field(discriminator="type"),
]


def event_market_id(event: Event) -> int:
    if isinstance(event, NewMarketEvent):
        return event.market.id
    return event.market_id


# ---------------------------------------------------------------------------
# Inbound subscription messages
# ---------------------------------------------------------------------------


class JoinActive(BaseModel):
    action: Literal["join_active"]


class JoinMarket(BaseModel):
    action: Literal["join_market"]
    market_id: int


class LeaveMarket(BaseModel):
    action: Literal["leave_market"]
    market_id: int


SubscriptionMessage = Annotated[
    Union[JoinActive, JoinMarket, LeaveMarket],
    Field(discriminator="action"),
]

_event_adapter: TypeAdapter[Any] = TypeAdapter(Event)
_subscription_adapter: TypeAdapter[Any] = TypeAdapter(SubscriptionMessage)


def _decode(adapter: TypeAdapter[Any], raw: str | bytes | dict[str, Any]) -> Any:
    try:
        if isinstance(raw, dict):
            return adapter.validate_python(raw)
        return adapter.validate_json(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise MalformedPayloadError(f"{loc}: {first.get('msg', 'invalid')}") from exc


def decode_event(raw: str | bytes | dict[str, Any]) -> Event:
    return _decode(_event_adapter, raw)


def decode_subscription(raw: str | bytes | dict[str, Any]) -> SubscriptionMessage:
    return _decode(_subscription_adapter, raw)
