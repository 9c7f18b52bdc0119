from __future__ import annotations

from enum import StrEnum
from typing import Protocol

from .base_types import AccountId, AssetId


class TransferDirection(StrEnum):
    PULL_IN = "PULL_IN"
    PUSH_OUT = "PUSH_OUT"


class TransferBoundary(Protocol):
    """Moves actual value in and out of custody.

    Implementations raise ``TransferFailed`` on any failure. The ledger calls
    these only after its own state has been committed.
    """

    def pull_in(self, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> None: ...

    def push_out(self, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> None: ...


__all__ = ["TransferBoundary", "TransferDirection"]
