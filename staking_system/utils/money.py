# staking_system/utils/money.py
"""
Decimal helpers for ledger amounts and balance checks.
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN

from staking_system.config.ranks import BALANCE_EPSILON

LEDGER_QUANTUM = Decimal("0.00000001")
CENT = Decimal("0.01")


def toMoney(value) -> Decimal:
    """Quantize any amount to the ledger precision (8 places)."""
    if value is None:
        return Decimal("0").quantize(LEDGER_QUANTUM)
    return Decimal(str(value)).quantize(LEDGER_QUANTUM, rounding=ROUND_DOWN)


def roundToTwoDecimals(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def hasSufficientBalance(balance, amount) -> bool:
    """Compare at cent precision with a small tolerance for float residue."""
    return roundToTwoDecimals(balance) + BALANCE_EPSILON >= roundToTwoDecimals(amount)


def percentOf(amount, ratePercent) -> Decimal:
    """amount * rate / 100 at ledger precision."""
    return toMoney(Decimal(str(amount)) * Decimal(str(ratePercent)) / Decimal("100"))
