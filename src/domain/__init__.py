"""Domain model of the custody ledger.

Balances, pool totals, the asset registry and the value feed adapter live
here as plain in-memory objects. Persistence and HTTP integrations are kept
in ``db`` and ``services`` so the accounting core can be tested without
either.
"""

__all__ = [
    "authorization",
    "base_types",
    "decimals",
    "errors",
    "ledger",
    "records",
    "reentrancy",
    "registry",
    "transfers",
    "value_feed",
]
