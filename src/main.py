from __future__ import annotations

import argparse
import csv
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from time import perf_counter
from typing import Iterable, Sequence

from config import AppSettings, config
from db.db import init_db
from db.repositories import JournalRepository
from domain.authorization import AllowListAuthorizer
from domain.base_types import AccountId, AssetId, FeedId
from domain.errors import LedgerError
from domain.ledger import CustodyLedger, LedgerConfig
from domain.records import LedgerRecord
from domain.registry import AssetRegistry
from domain.value_feed import ValueFeedAdapter
from services.gateway_adapters import GatewayAssetMetadata, GatewayTransferBoundary, GatewayValueFeed
from services.gateway_client import GatewayClient
from utils.formatting import format_units

logger = logging.getLogger(__name__)


class Action(StrEnum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    REGISTER = "register"
    DEREGISTER = "deregister"


@dataclass(frozen=True)
class Operation:
    line: int
    account_id: AccountId
    action: Action
    asset_id: AssetId
    amount: int


@dataclass(frozen=True)
class OperationOutcome:
    operation: Operation
    record: LedgerRecord | None = None
    error: LedgerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_ledger(settings: AppSettings, client: GatewayClient) -> CustodyLedger:
    ledger_config = LedgerConfig(
        capacity=settings.capacity,
        withdrawal_limit=settings.withdrawal_limit,
        base_asset_id=AssetId(settings.base_asset_id),
        base_precision=settings.base_asset_precision,
    )
    registry = AssetRegistry(
        metadata=GatewayAssetMetadata(client=client),
        base_asset_id=ledger_config.base_asset_id,
        base_precision=ledger_config.base_precision,
    )
    feed = GatewayValueFeed(client=client, feed_id=FeedId(settings.feed_id), decimals=settings.feed_decimals)
    return CustodyLedger(
        config=ledger_config,
        registry=registry,
        feed=ValueFeedAdapter(feed, heartbeat_seconds=settings.feed_heartbeat_seconds),
        transfers=GatewayTransferBoundary(client=client),
        authorizer=AllowListAuthorizer(settings.admins),
    )


def load_operations(csv_path: Path) -> list[Operation]:
    """Read ``account,action,asset,amount`` rows; amounts are asset-native integers."""
    operations: list[Operation] = []
    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        for line, row in enumerate(reader, start=2):
            try:
                account_id = AccountId(row["account"].strip())
                asset_id = AssetId(row["asset"].strip())
                action = Action(row["action"].strip().lower())
                amount_raw = (row.get("amount") or "").strip()
                amount = int(amount_raw) if amount_raw else 0
            except (AttributeError, KeyError, ValueError) as exc:
                msg = f"{csv_path}:{line}: invalid operation row {row!r}"
                raise ValueError(msg) from exc
            operations.append(
                Operation(
                    line=line,
                    account_id=account_id,
                    action=action,
                    asset_id=asset_id,
                    amount=amount,
                )
            )
    return operations


def apply_operations(ledger: CustodyLedger, operations: Iterable[Operation]) -> list[OperationOutcome]:
    """Apply operations in order; a failed operation is reported and the rest continue."""
    outcomes: list[OperationOutcome] = []
    for operation in operations:
        try:
            record = _apply(ledger, operation)
        except LedgerError as exc:
            logger.warning("Line %d: %s %s rejected: %s", operation.line, operation.action, operation.asset_id, exc)
            outcomes.append(OperationOutcome(operation=operation, error=exc))
            continue
        outcomes.append(OperationOutcome(operation=operation, record=record))
    return outcomes


def _apply(ledger: CustodyLedger, operation: Operation) -> LedgerRecord:
    if operation.action == Action.DEPOSIT:
        return ledger.deposit(operation.account_id, operation.asset_id, operation.amount)
    if operation.action == Action.WITHDRAW:
        return ledger.withdraw(operation.account_id, operation.asset_id, operation.amount)
    if operation.action == Action.REGISTER:
        return ledger.register_asset(operation.account_id, operation.asset_id)
    return ledger.deregister_asset(operation.account_id, operation.asset_id)


def render_summary(ledger: CustodyLedger, outcomes: Sequence[OperationOutcome]) -> None:
    failed = [outcome for outcome in outcomes if not outcome.ok]
    counters = ledger.counters()
    print("Ledger summary:")
    print(f"  Operations applied: {len(outcomes) - len(failed)}")
    print(f"  Operations rejected: {len(failed)}")
    print(f"  Deposits / withdrawals: {counters.deposits} / {counters.withdrawals}")
    print(f"  Total pool value: {format_units(ledger.total_pool_value())}")
    print(f"  Available capacity: {format_units(ledger.available_capacity())}")
    for asset_id, total in sorted(ledger.pool_totals().items()):
        print(f"    {asset_id}: {format_units(total)}")
    for outcome in failed:
        op = outcome.operation
        error = outcome.error
        print(f"  line {op.line}: {op.action} {op.asset_id} by {op.account_id} -> {type(error).__name__}: {error}")


def run(csv_path: Path, *, settings: AppSettings) -> list[OperationOutcome]:
    client = GatewayClient(
        base_url=settings.gateway_url,
        api_key=settings.gateway_api_key,
        timeout=settings.gateway_timeout,
    )
    ledger = build_ledger(settings, client)
    operations = load_operations(csv_path)
    logger.info("Loaded %d operations from %s", len(operations), csv_path)

    # The ledger lives in memory, so each run starts a fresh journal.
    session = init_db(settings.db_file, reset=True)
    journal = JournalRepository(session)

    started = perf_counter()
    outcomes = apply_operations(ledger, operations)
    logger.info("Applied operations in %.2fs", perf_counter() - started)

    records = ledger.drain_records()
    journal.create_many(records)
    logger.info("Persisted %d records to %s", len(records), settings.db_file)

    render_summary(ledger, outcomes)
    return outcomes


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    parser = argparse.ArgumentParser(description="Replay custody operations against a gateway-backed ledger.")
    parser.add_argument("--csv", type=Path, default=Path("data/operations.csv"))
    args = parser.parse_args(argv)
    run(args.csv, settings=config())


if __name__ == "__main__":
    main()
