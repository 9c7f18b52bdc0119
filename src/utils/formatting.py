from __future__ import annotations

from domain.base_types import LEDGER_PRECISION


def format_units(value: int, precision: int = LEDGER_PRECISION) -> str:
    """Render a fixed-precision integer with all of its fractional digits: 4000000000 -> '4000.000000'."""
    if precision == 0:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10**precision)
    return f"{sign}{whole}.{fraction:0{precision}d}"
