from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import NewType
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

RecordId = NewType("RecordId", UUID)


class RecordType(StrEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    FEED_UPDATED = "FEED_UPDATED"
    ASSET_REGISTERED = "ASSET_REGISTERED"
    ASSET_DEREGISTERED = "ASSET_DEREGISTERED"


_MOVEMENT_TYPES = {RecordType.DEPOSIT, RecordType.WITHDRAWAL}
_ASSET_TYPES = {RecordType.ASSET_REGISTERED, RecordType.ASSET_DEREGISTERED}


class LedgerRecord(BaseModel):
    """Observable record of a completed ledger operation.

    Field requirements by type:
    - DEPOSIT / WITHDRAWAL: account_id, asset_id, raw_amount, ledger_amount
    - FEED_UPDATED: feed_id
    - ASSET_REGISTERED / ASSET_DEREGISTERED: asset_id
    """

    id: RecordId = RecordId(Field(default_factory=uuid4))
    sequence: int
    timestamp: datetime
    record_type: RecordType
    account_id: str | None = None
    asset_id: str | None = None
    raw_amount: int | None = None
    ledger_amount: int | None = None
    feed_id: str | None = None

    @model_validator(mode="after")
    def _validate_fields(self) -> LedgerRecord:
        if self.sequence < 1:
            raise ValueError("sequence must be >= 1")
        if self.record_type in _MOVEMENT_TYPES:
            if not self.account_id or not self.asset_id:
                raise ValueError(f"{self.record_type} record requires account_id and asset_id")
            if self.raw_amount is None or self.raw_amount <= 0:
                raise ValueError(f"{self.record_type} record requires raw_amount > 0")
            if self.ledger_amount is None or self.ledger_amount < 0:
                raise ValueError(f"{self.record_type} record requires ledger_amount >= 0")
        elif self.record_type in _ASSET_TYPES:
            if not self.asset_id:
                raise ValueError(f"{self.record_type} record requires asset_id")
        elif self.record_type == RecordType.FEED_UPDATED:
            if not self.feed_id:
                raise ValueError("FEED_UPDATED record requires feed_id")
        return self


__all__ = ["LedgerRecord", "RecordId", "RecordType"]
