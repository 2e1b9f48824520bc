"""Tests for pm_common.errors and pm_common.response."""

import pytest

from src.pm_common.errors import (
    AdminAuthError,
    AlreadyClaimedError,
    AlreadyResolvedError,
    AppError,
    BetTooSmallError,
    InsufficientBalanceError,
    InvalidOutcomeError,
    MarketClosedError,
    MarketNotFoundError,
    MarketNotResolvedError,
)
from src.pm_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1001, message="test"), Exception)


class TestSpecificErrors:
    @pytest.mark.parametrize(
        ("err", "code", "status"),
        [
            (InvalidOutcomeError(3, 2), 1001, 422),
            (BetTooSmallError(5, 10), 1002, 422),
            (InsufficientBalanceError(required=6500, available=3000), 2001, 422),
            (MarketNotFoundError(1), 3001, 404),
            (MarketClosedError(1), 3002, 422),
            (AlreadyResolvedError(1, "RESOLVED"), 3003, 409),
            (MarketNotResolvedError(1), 3004, 422),
            (AlreadyClaimedError(1), 4002, 409),
            (AdminAuthError(), 9004, 403),
        ],
    )
    def test_codes(self, err: AppError, code: int, status: int) -> None:
        assert err.code == code
        assert err.http_status == status

    def test_insufficient_balance_message(self) -> None:
        err = InsufficientBalanceError(required=6500, available=3000)
        assert "6500" in err.message
        assert "3000" in err.message


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": 1})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": 1}
        assert resp.request_id.startswith("req_")

    def test_error(self) -> None:
        resp = error_response(3001, "Market not found: 1")
        assert resp.code == 3001
        assert resp.data is None

    def test_timestamp_present(self) -> None:
        assert ApiResponse().timestamp
