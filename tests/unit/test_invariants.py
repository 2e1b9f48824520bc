import pytest

from src.pm_clearing.domain.invariants import (
    verify_pool_invariant,
    verify_settlement_conservation,
)
from src.pm_common.errors import InvariantViolationError
from src.pm_market.domain.models import ResolutionResult
from tests.helpers import make_market


class TestPoolInvariant:
    def test_consistent(self) -> None:
        verify_pool_invariant(make_market(pools=[100, 300], total_pool=400))

    def test_total_mismatch(self) -> None:
        with pytest.raises(InvariantViolationError, match="INV-3"):
            verify_pool_invariant(make_market(pools=[100, 300], total_pool=401))

    def test_pool_count_mismatch(self) -> None:
        with pytest.raises(InvariantViolationError, match="INV-1"):
            verify_pool_invariant(make_market(pools=[100], total_pool=100))

    def test_negative_pool(self) -> None:
        with pytest.raises(InvariantViolationError, match="INV-2"):
            verify_pool_invariant(make_market(pools=[-1, 1], total_pool=0))

    def test_error_is_500(self) -> None:
        with pytest.raises(InvariantViolationError) as exc_info:
            verify_pool_invariant(make_market(pools=[1, 1], total_pool=3))
        assert exc_info.value.code == 9003
        assert exc_info.value.http_status == 500


def _result(payouts: dict[int, int], house_fee: int = 20, total: int = 400) -> ResolutionResult:
    return ResolutionResult(
        market_id=1,
        winning_outcome=1,
        total_pool=total,
        net_pool=total - house_fee,
        winning_pool=300,
        house_fee=house_fee,
        payouts=payouts,
    )


class TestSettlementConservation:
    def test_exact(self) -> None:
        verify_settlement_conservation(_result({1: 380}), 1)

    def test_rounding_loss_within_bound(self) -> None:
        verify_settlement_conservation(_result({1: 189, 2: 190}), 2)

    def test_overpay(self) -> None:
        with pytest.raises(InvariantViolationError, match="INV-4"):
            verify_settlement_conservation(_result({1: 381}), 1)

    def test_rounding_loss_too_large(self) -> None:
        with pytest.raises(InvariantViolationError, match="INV-5"):
            verify_settlement_conservation(_result({1: 370}), 1)
