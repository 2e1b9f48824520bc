from src.pm_common.errors import InvalidOutcomeError
from src.pm_market.domain.models import Market


def check_outcome_index(market: Market, outcome_index: int) -> None:
    """Raise InvalidOutcomeError if outcome_index is not in [0, len(outcomes))."""
    if not (0 <= outcome_index < market.outcome_count):
        raise InvalidOutcomeError(outcome_index, market.outcome_count)
