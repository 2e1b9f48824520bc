"""Integer arithmetic utilities for gold-denominated wagering.

All stakes, pools and payouts are int gold. No float, no Decimal.
Odds are fixed-point basis points: 10000 = 1.00x.
"""

from src.pm_common.errors import InvalidFeeError

BPS_DENOMINATOR: int = 10_000


def validate_fee_bps(fee_bps: int) -> None:
    """Raise InvalidFeeError unless the fee is in [0, 10000] bps."""
    if not (0 <= fee_bps <= BPS_DENOMINATOR):
        raise InvalidFeeError(fee_bps)


def apply_fee(total: int, fee_bps: int) -> int:
    """Net amount after deducting the house fee, floor-rounded.

    net = floor(total * (10000 - fee_bps) / 10000)
    """
    return total * (BPS_DENOMINATOR - fee_bps) // BPS_DENOMINATOR


def gold_to_display(amount: int) -> str:
    """Convert gold to display string: 12500 -> '12,500 gold'."""
    return f"{amount:,} gold"


def odds_to_display(odds_bps: int) -> str:
    """Convert bps odds to a multiplier string: 25000 -> '2.50x', 0 -> '-'."""
    if odds_bps == 0:
        return "-"
    whole, frac = divmod(odds_bps, BPS_DENOMINATOR)
    # two decimals, half-up on the third
    hundredths = (frac + 50) // 100
    if hundredths == 100:
        whole, hundredths = whole + 1, 0
    return f"{whole}.{hundredths:02d}x"
