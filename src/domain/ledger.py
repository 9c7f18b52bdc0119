from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .authorization import Authorizer
from .base_types import AccountId, AssetId
from .decimals import to_ledger_units
from .errors import (
    AssetNotEligible,
    CapacityExceeded,
    InsufficientBalance,
    InvalidAccount,
    LedgerError,
    PrecisionLocked,
    TransferFailed,
    WithdrawalLimitExceeded,
    ZeroAmount,
)
from .records import LedgerRecord, RecordType
from .reentrancy import ReentrancyGuard
from .registry import AssetRegistry
from .transfers import TransferBoundary, TransferDirection
from .value_feed import ValueFeed, ValueFeedAdapter

logger = logging.getLogger(__name__)


RecordListener = Callable[[LedgerRecord], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LedgerConfig:
    """Limits fixed for the lifetime of a ledger, in ledger units."""

    capacity: int
    withdrawal_limit: int
    base_asset_id: AssetId
    base_precision: int = 18

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise ValueError("capacity must be >= 0")
        if self.withdrawal_limit < 0:
            raise ValueError("withdrawal_limit must be >= 0")
        if self.base_precision < 0:
            raise ValueError("base_precision must be >= 0")
        if not self.base_asset_id:
            raise ValueError("base_asset_id must be non-empty")


@dataclass(frozen=True)
class OperationCounters:
    deposits: int
    withdrawals: int


@dataclass(frozen=True)
class _Commit:
    account_id: AccountId
    asset_id: AssetId
    kind: RecordType
    previous_balance: int | None
    previous_pool: int | None


class CustodyLedger:
    """Per-account, per-asset balances denominated in ledger units.

    Every mutating entry point runs under the reentrancy latch and follows the
    same order: validate, commit ledger state, settle through the transfer
    boundary. A failed settlement restores the state captured at commit.
    """

    def __init__(
        self,
        *,
        config: LedgerConfig,
        registry: AssetRegistry,
        feed: ValueFeedAdapter,
        transfers: TransferBoundary,
        authorizer: Authorizer,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if registry.base_asset_id != config.base_asset_id:
            msg = "registry and config disagree on the base asset"
            raise ValueError(msg)
        self.config = config
        self._registry = registry
        self._feed = feed
        self._transfers = transfers
        self._authorizer = authorizer
        self._clock = clock

        self._balances: dict[AssetId, dict[AccountId, int]] = {}
        self._pools: dict[AssetId, int] = {}
        self._deposit_count = 0
        self._withdrawal_count = 0
        self._guard = ReentrancyGuard()
        self._records: list[LedgerRecord] = []
        self._last_sequence = 0
        self._listeners: list[RecordListener] = []

    def subscribe(self, listener: RecordListener) -> None:
        """Call ``listener`` with every record emitted from now on."""
        self._listeners.append(listener)

    # Operations

    def deposit(self, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> LedgerRecord:
        with self._guard.hold("deposit"):
            self._validate_request(account_id, raw_amount)
            if not self._registry.is_eligible(asset_id):
                raise AssetNotEligible(asset_id)

            ledger_amount = self._to_ledger_amount(asset_id, raw_amount)
            current_total = self.total_pool_value()
            if current_total + ledger_amount > self.config.capacity:
                raise CapacityExceeded(attempted=ledger_amount, available=self.config.capacity - current_total)

            # Built before commit so an unrecordable operation never touches state.
            record = self._record(
                RecordType.DEPOSIT,
                account_id=account_id,
                asset_id=asset_id,
                raw_amount=raw_amount,
                ledger_amount=ledger_amount,
            )
            commit = self._commit(account_id, asset_id, ledger_amount, RecordType.DEPOSIT)
            self._settle(commit, TransferDirection.PULL_IN, raw_amount)

            logger.info(
                "Deposit account=%s asset=%s raw=%d ledger=%d", account_id, asset_id, raw_amount, ledger_amount
            )
            return self._publish(record)

    def withdraw(self, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> LedgerRecord:
        # No eligibility check: balances of deregistered assets stay
        # withdrawable.
        with self._guard.hold("withdraw"):
            self._validate_request(account_id, raw_amount)

            ledger_amount = self._to_ledger_amount(asset_id, raw_amount)
            if ledger_amount == 0:
                raise ZeroAmount(raw_amount=raw_amount)
            if ledger_amount > self.config.withdrawal_limit:
                raise WithdrawalLimitExceeded(attempted=ledger_amount, limit=self.config.withdrawal_limit)
            available = self.balance(account_id, asset_id)
            if ledger_amount > available:
                raise InsufficientBalance(requested=ledger_amount, available=available)

            record = self._record(
                RecordType.WITHDRAWAL,
                account_id=account_id,
                asset_id=asset_id,
                raw_amount=raw_amount,
                ledger_amount=ledger_amount,
            )
            commit = self._commit(account_id, asset_id, -ledger_amount, RecordType.WITHDRAWAL)
            self._settle(commit, TransferDirection.PUSH_OUT, raw_amount)

            logger.info(
                "Withdrawal account=%s asset=%s raw=%d ledger=%d", account_id, asset_id, raw_amount, ledger_amount
            )
            return self._publish(record)

    # Administration

    def register_asset(self, caller: AccountId, asset_id: AssetId) -> LedgerRecord:
        with self._guard.hold("register_asset"):
            self._authorizer.require_admin(caller, "register_asset")
            record = self._record(RecordType.ASSET_REGISTERED, asset_id=asset_id)
            self._registry.register(asset_id)
            logger.info("Registered asset %s", asset_id)
            return self._publish(record)

    def deregister_asset(self, caller: AccountId, asset_id: AssetId) -> LedgerRecord:
        with self._guard.hold("deregister_asset"):
            self._authorizer.require_admin(caller, "deregister_asset")
            record = self._record(RecordType.ASSET_DEREGISTERED, asset_id=asset_id)
            self._registry.deregister(asset_id)
            logger.info("Deregistered asset %s (pool total %d stays withdrawable)", asset_id, self.pool_total(asset_id))
            return self._publish(record)

    def set_value_feed(self, caller: AccountId, feed: ValueFeed) -> LedgerRecord:
        with self._guard.hold("set_value_feed"):
            self._authorizer.require_admin(caller, "set_value_feed")
            record = self._record(RecordType.FEED_UPDATED, feed_id=feed.feed_id)
            self._feed = self._feed.with_feed(feed)
            logger.info("Value feed set to %s", feed.feed_id)
            return self._publish(record)

    def override_precision(self, caller: AccountId, asset_id: AssetId, precision: int) -> None:
        with self._guard.hold("override_precision"):
            self._authorizer.require_admin(caller, "override_precision")
            pool_total = self.pool_total(asset_id)
            if pool_total != 0:
                raise PrecisionLocked(asset_id, pool_total=pool_total)
            self._registry.override_precision(asset_id, precision)

    # Queries

    def balance(self, account_id: AccountId, asset_id: AssetId) -> int:
        return self._balances.get(asset_id, {}).get(account_id, 0)

    def balances_of(self, asset_id: AssetId) -> dict[AccountId, int]:
        return dict(self._balances.get(asset_id, {}))

    def pool_total(self, asset_id: AssetId) -> int:
        return self._pools.get(asset_id, 0)

    def pool_totals(self) -> dict[AssetId, int]:
        return dict(self._pools)

    def total_pool_value(self) -> int:
        # Summed over every known asset so deregistered pools still count.
        return sum(self.pool_total(asset_id) for asset_id in self._registry.known_assets())

    def available_capacity(self) -> int:
        return max(self.config.capacity - self.total_pool_value(), 0)

    def current_base_price(self) -> int:
        return self._feed.current_price()

    @property
    def feed_decimals(self) -> int:
        return self._feed.decimals

    def counters(self) -> OperationCounters:
        return OperationCounters(deposits=self._deposit_count, withdrawals=self._withdrawal_count)

    def is_eligible(self, asset_id: AssetId) -> bool:
        return self._registry.is_eligible(asset_id)

    def list_eligible_assets(self) -> list[AssetId]:
        return self._registry.list_eligible()

    def records(self, *, after_sequence: int = 0) -> list[LedgerRecord]:
        """Records still held in memory, oldest first.

        The in-memory list grows with every operation until ``drain_records``
        is called.
        """
        return [record for record in self._records if record.sequence > after_sequence]

    def drain_records(self) -> list[LedgerRecord]:
        """Hand over the held records and forget them; sequence numbers keep counting."""
        drained, self._records = self._records, []
        return drained

    # Internals

    @staticmethod
    def _validate_request(account_id: AccountId, raw_amount: int) -> None:
        if not account_id:
            raise InvalidAccount(account_id)
        if raw_amount < 0:
            msg = "raw_amount must be >= 0"
            raise ValueError(msg)
        if raw_amount == 0:
            raise ZeroAmount()

    def _to_ledger_amount(self, asset_id: AssetId, raw_amount: int) -> int:
        precision = self._registry.resolve_precision(asset_id)
        if asset_id == self.config.base_asset_id:
            return self._feed.value_of(raw_amount, precision)
        return to_ledger_units(raw_amount, precision)

    def _commit(self, account_id: AccountId, asset_id: AssetId, delta: int, kind: RecordType) -> _Commit:
        accounts = self._balances.setdefault(asset_id, {})
        commit = _Commit(
            account_id=account_id,
            asset_id=asset_id,
            kind=kind,
            previous_balance=accounts.get(account_id),
            previous_pool=self._pools.get(asset_id),
        )
        accounts[account_id] = accounts.get(account_id, 0) + delta
        self._pools[asset_id] = self._pools.get(asset_id, 0) + delta
        self._bump_counter(kind, 1)
        return commit

    def _settle(self, commit: _Commit, direction: TransferDirection, raw_amount: int) -> None:
        if direction == TransferDirection.PULL_IN:
            move = self._transfers.pull_in
        else:
            move = self._transfers.push_out
        try:
            move(commit.account_id, commit.asset_id, raw_amount)
        except LedgerError:
            self._rollback(commit)
            raise
        except Exception as exc:
            self._rollback(commit)
            raise TransferFailed(
                direction=direction.value,
                account_id=commit.account_id,
                asset_id=commit.asset_id,
                raw_amount=raw_amount,
                detail=f"{type(exc).__name__}: {exc}",
            ) from exc
        except BaseException:
            self._rollback(commit)
            raise

    def _rollback(self, commit: _Commit) -> None:
        logger.warning(
            "Settlement failed, rolling back %s for account=%s asset=%s",
            commit.kind,
            commit.account_id,
            commit.asset_id,
        )
        accounts = self._balances[commit.asset_id]
        if commit.previous_balance is None:
            del accounts[commit.account_id]
        else:
            accounts[commit.account_id] = commit.previous_balance
        if not accounts:
            del self._balances[commit.asset_id]
        if commit.previous_pool is None:
            del self._pools[commit.asset_id]
        else:
            self._pools[commit.asset_id] = commit.previous_pool
        self._bump_counter(commit.kind, -1)

    def _bump_counter(self, kind: RecordType, step: int) -> None:
        if kind == RecordType.DEPOSIT:
            self._deposit_count += step
        else:
            self._withdrawal_count += step

    def _record(self, record_type: RecordType, **fields: object) -> LedgerRecord:
        return LedgerRecord(
            sequence=self._last_sequence + 1,
            timestamp=self._clock(),
            record_type=record_type,
            **fields,  # type: ignore[arg-type]
        )

    def _publish(self, record: LedgerRecord) -> LedgerRecord:
        self._last_sequence = record.sequence
        self._records.append(record)
        # The operation is final by now; a failing listener cannot undo it.
        for listener in self._listeners:
            try:
                listener(record)
            except Exception:
                logger.exception("Record listener failed for %s #%d", record.record_type, record.sequence)
        return record


__all__ = ["CustodyLedger", "LedgerConfig", "OperationCounters", "RecordListener"]
