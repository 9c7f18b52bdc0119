from __future__ import annotations

from datetime import timezone
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db import models
from domain.records import LedgerRecord, RecordType


class JournalRepository:
    """Append-only store of ledger records, ordered by sequence number."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, record: LedgerRecord) -> LedgerRecord:
        orm_record = self._to_orm(record)
        self._session.add(orm_record)
        self._session.commit()
        self._session.refresh(orm_record)
        return self._to_domain(orm_record)

    def create_many(self, records: Iterable[LedgerRecord]) -> None:
        self._session.add_all([self._to_orm(record) for record in records])
        self._session.commit()

    def get(self, record_id: UUID) -> LedgerRecord | None:
        orm_record = self._session.get(models.LedgerRecordOrm, record_id)
        if orm_record is None:
            return None
        return self._to_domain(orm_record)

    def list(self, *, record_type: RecordType | None = None) -> list[LedgerRecord]:
        stmt = select(models.LedgerRecordOrm).order_by(models.LedgerRecordOrm.sequence.asc())
        if record_type is not None:
            stmt = stmt.where(models.LedgerRecordOrm.record_type == record_type.value)
        return [self._to_domain(orm_record) for orm_record in self._session.scalars(stmt)]

    def last_sequence(self) -> int:
        value = self._session.scalar(select(func.max(models.LedgerRecordOrm.sequence)))
        return value or 0

    @staticmethod
    def _to_orm(record: LedgerRecord) -> models.LedgerRecordOrm:
        return models.LedgerRecordOrm(
            id=record.id,
            sequence=record.sequence,
            timestamp=record.timestamp,
            record_type=record.record_type.value,
            account_id=record.account_id,
            asset_id=record.asset_id,
            raw_amount=record.raw_amount,
            ledger_amount=record.ledger_amount,
            feed_id=record.feed_id,
        )

    @staticmethod
    def _to_domain(orm_record: models.LedgerRecordOrm) -> LedgerRecord:
        timestamp = orm_record.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return LedgerRecord(
            id=orm_record.id,
            sequence=orm_record.sequence,
            timestamp=timestamp,
            record_type=RecordType(orm_record.record_type),
            account_id=orm_record.account_id,
            asset_id=orm_record.asset_id,
            raw_amount=orm_record.raw_amount,
            ledger_amount=orm_record.ledger_amount,
            feed_id=orm_record.feed_id,
        )
