from __future__ import annotations

from typing import NewType

AccountId = NewType("AccountId", str)
AssetId = NewType("AssetId", str)
FeedId = NewType("FeedId", str)

# Every balance and pool total is stored with this many fractional digits.
LEDGER_PRECISION = 6
