"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Validation (bad input shape/range, safe to retry after correcting input)
  2xxx: Resource (caller must act externally, e.g. top up gold)
  3xxx: Market state
  4xxx: Bet state
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Validation ---

class InvalidOutcomeError(AppError):
    def __init__(self, outcome_index: int, outcome_count: int) -> None:
        super().__init__(
            1001,
            f"Invalid outcome index {outcome_index}: market has {outcome_count} outcomes",
            422,
        )


class BetTooSmallError(AppError):
    def __init__(self, amount: int, min_bet: int) -> None:
        super().__init__(1002, f"Bet too small: {amount} gold (min {min_bet})", 422)


class BetTooLargeError(AppError):
    def __init__(self, amount: int, max_bet: int) -> None:
        super().__init__(1003, f"Bet too large: {amount} gold (max {max_bet})", 422)


class InvalidOutcomeCountError(AppError):
    def __init__(self, count: int) -> None:
        super().__init__(1004, f"A market needs at least 2 outcomes, got {count}", 422)


class InvalidFeeError(AppError):
    def __init__(self, fee_bps: int) -> None:
        super().__init__(1005, f"House fee must be in [0, 10000] bps, got {fee_bps}", 422)


class MalformedPayloadError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1006, f"Malformed payload: {detail}", 400)


# --- 2xxx: Resource ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} gold, available {available} gold",
            422,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3002, f"Market is closed for betting: {market_id}", 422)


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: int, status: str) -> None:
        super().__init__(
            3003, f"Market {market_id} is already {status}", 409
        )


class MarketNotResolvedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3004, f"Market is not resolved yet: {market_id}", 422)


# --- 4xxx: Bet ---

class BetNotFoundError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(4001, f"Bet not found: {bet_id}", 404)


class AlreadyClaimedError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(4002, f"Bet already claimed: {bet_id}", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvariantViolationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Invariant violated: {detail}", 500)


class AdminAuthError(AppError):
    def __init__(self) -> None:
        super().__init__(9004, "Admin key missing or invalid", 403)
