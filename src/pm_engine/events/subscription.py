"""Per-connection event filter driven by inbound subscription messages.

``join_active`` puts the connection in the lobby: it receives every event.
``join_market`` adds one market's events; ``leave_market`` removes them.
A fresh connection receives nothing until it joins something.
"""

from src.pm_engine.events.models import (
    Event,
    JoinActive,
    JoinMarket,
    LeaveMarket,
    SubscriptionMessage,
    event_market_id,
)


class FeedSubscription:
    def __init__(self) -> None:
        self.lobby = False
        self.market_ids: set[int] = set()

    def apply(self, message: SubscriptionMessage) -> None:
        if isinstance(message, JoinActive):
            self.lobby = True
        elif isinstance(message, JoinMarket):
            self.market_ids.add(message.market_id)
        elif isinstance(message, LeaveMarket):
            self.market_ids.discard(message.market_id)

    def wants(self, event: Event) -> bool:
        return self.lobby or event_market_id(event) in self.market_ids

    def describe(self) -> dict[str, object]:
        return {"type": "subscribed", "lobby": self.lobby, "market_ids": sorted(self.market_ids)}
