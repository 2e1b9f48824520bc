from datetime import datetime

from src.pm_common.errors import MarketClosedError
from src.pm_market.domain.models import Market


def check_market_open(market: Market, now: datetime) -> None:
    """Raise MarketClosedError once the deadline has passed or the market left ACTIVE."""
    if not market.is_active or now >= market.betting_deadline:
        raise MarketClosedError(market.id)
