from src.pm_common.errors import InsufficientBalanceError


def check_balance(amount: int, available: int) -> None:
    """Raise InsufficientBalanceError if the stake exceeds the bettor's gold."""
    if amount > available:
        raise InsufficientBalanceError(amount, available)
