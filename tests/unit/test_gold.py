"""Tests for pm_common.gold integer helpers."""

import pytest

from src.pm_common.errors import InvalidFeeError
from src.pm_common.gold import apply_fee, gold_to_display, odds_to_display, validate_fee_bps


class TestApplyFee:
    def test_five_percent(self) -> None:
        assert apply_fee(400, 500) == 380

    def test_floors(self) -> None:
        assert apply_fee(450, 500) == 427  # 427.5

    def test_zero_fee(self) -> None:
        assert apply_fee(999, 0) == 999

    def test_full_fee(self) -> None:
        assert apply_fee(999, 10_000) == 0


class TestValidateFee:
    @pytest.mark.parametrize("fee", [0, 500, 10_000])
    def test_accepts_range(self, fee: int) -> None:
        validate_fee_bps(fee)

    @pytest.mark.parametrize("fee", [-1, 10_001])
    def test_rejects_out_of_range(self, fee: int) -> None:
        with pytest.raises(InvalidFeeError) as exc_info:
            validate_fee_bps(fee)
        assert exc_info.value.code == 1005


class TestDisplay:
    def test_gold(self) -> None:
        assert gold_to_display(12_500) == "12,500 gold"

    def test_gold_zero(self) -> None:
        assert gold_to_display(0) == "0 gold"

    @pytest.mark.parametrize(
        ("bps", "expected"),
        [
            (10_000, "1.00x"),
            (40_000, "4.00x"),
            (13_333, "1.33x"),
            (25_000, "2.50x"),
            (19_950, "2.00x"),  # half-up carries into the whole part
            (11_149, "1.11x"),
        ],
    )
    def test_odds(self, bps: int, expected: str) -> None:
        assert odds_to_display(bps) == expected

    def test_odds_zero_is_dash(self) -> None:
        assert odds_to_display(0) == "-"
