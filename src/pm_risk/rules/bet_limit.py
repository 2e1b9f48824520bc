from src.pm_common.errors import BetTooLargeError, BetTooSmallError

MIN_BET = 10
MAX_BET = 100_000


def check_bet_limit(amount: int) -> None:
    """Raise BetTooSmall/BetTooLarge if amount is not in [MIN_BET, MAX_BET]."""
    if amount < MIN_BET:
        raise BetTooSmallError(amount, MIN_BET)
    if amount > MAX_BET:
        raise BetTooLargeError(amount, MAX_BET)
