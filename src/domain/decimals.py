"""Conversion of asset-native integer amounts into ledger units.

Scaling down truncates toward zero: whatever lies below the target precision
is dropped, so a deposit worth less than one ledger unit normalizes to 0.
"""

from __future__ import annotations

from .base_types import LEDGER_PRECISION


def normalize(amount: int, from_precision: int, to_precision: int = LEDGER_PRECISION) -> int:
    if amount < 0:
        msg = "amount must be >= 0"
        raise ValueError(msg)
    if from_precision < 0 or to_precision < 0:
        msg = "precision must be >= 0"
        raise ValueError(msg)

    if from_precision > to_precision:
        return amount // 10 ** (from_precision - to_precision)
    if from_precision < to_precision:
        return amount * 10 ** (to_precision - from_precision)
    return amount


def to_ledger_units(amount: int, precision: int) -> int:
    return normalize(amount, precision, LEDGER_PRECISION)


__all__ = ["normalize", "to_ledger_units"]
