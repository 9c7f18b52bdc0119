"""A counter-party that gets control during settlement and calls back into the ledger."""

import pytest

from domain.base_types import AccountId, AssetId
from domain.errors import LedgerError, ReentrancyRejected
from domain.ledger import OperationCounters
from domain.transfers import TransferDirection
from tests.constants import ADMIN, ALICE, BOB, ETH, MALLORY, ONE_ETH, ONE_UNIT, ONE_USDC, UNKNOWN, USDC
from tests.helpers.ledger_harness import LedgerHarness


def test_withdraw_reentered_during_push_is_rejected(harness: LedgerHarness) -> None:
    ledger = harness.ledger
    ledger.deposit(MALLORY, USDC, 1_000 * ONE_USDC)
    ledger.deposit(BOB, USDC, 1_000 * ONE_USDC)
    attempts: list[LedgerError] = []
    balances_seen: list[int] = []

    def hostile(direction: TransferDirection, account: AccountId, asset: AssetId, amount: int) -> None:
        balances_seen.append(ledger.balance(account, asset))
        try:
            ledger.withdraw(account, asset, amount)
        except LedgerError as exc:
            attempts.append(exc)

    harness.custody.on_settle = hostile

    ledger.withdraw(MALLORY, USDC, 1_000 * ONE_USDC)

    assert len(attempts) == 1
    assert isinstance(attempts[0], ReentrancyRejected)
    assert attempts[0].operation == "withdraw"
    # The outer commit was already applied when control left the ledger.
    assert balances_seen == [0]
    assert ledger.balance(MALLORY, USDC) == 0
    assert ledger.pool_total(USDC) == 1_000 * ONE_UNIT
    assert harness.custody.wallets[(MALLORY, USDC)] == 10**30
    assert harness.custody.vault[USDC] == 1_000 * ONE_USDC
    assert ledger.counters() == OperationCounters(deposits=2, withdrawals=1)


def test_deposit_reentered_during_pull_is_rejected(harness: LedgerHarness) -> None:
    ledger = harness.ledger
    attempts: list[LedgerError] = []

    def hostile(direction: TransferDirection, account: AccountId, asset: AssetId, amount: int) -> None:
        try:
            ledger.deposit(account, asset, amount)
        except LedgerError as exc:
            attempts.append(exc)

    harness.custody.on_settle = hostile

    ledger.deposit(MALLORY, ETH, ONE_ETH)

    assert [type(exc) for exc in attempts] == [ReentrancyRejected]
    assert ledger.balance(MALLORY, ETH) == 2_000 * ONE_UNIT
    assert ledger.counters().deposits == 1


def test_propagated_rejection_rolls_back_outer_operation(harness: LedgerHarness) -> None:
    ledger = harness.ledger
    ledger.deposit(MALLORY, USDC, 500 * ONE_USDC)
    balance_before = ledger.balance(MALLORY, USDC)
    records_before = ledger.records()

    def hostile(direction: TransferDirection, account: AccountId, asset: AssetId, amount: int) -> None:
        ledger.withdraw(account, asset, amount)

    harness.custody.on_settle = hostile

    with pytest.raises(ReentrancyRejected):
        ledger.withdraw(MALLORY, USDC, 500 * ONE_USDC)

    assert ledger.balance(MALLORY, USDC) == balance_before
    assert ledger.pool_total(USDC) == balance_before
    assert ledger.counters() == OperationCounters(deposits=1, withdrawals=0)
    assert ledger.records() == records_before
    assert harness.custody.vault[USDC] == 500 * ONE_USDC


def test_admin_calls_are_rejected_during_settlement(harness: LedgerHarness) -> None:
    ledger = harness.ledger
    attempts: list[LedgerError] = []

    def hostile(direction: TransferDirection, account: AccountId, asset: AssetId, amount: int) -> None:
        try:
            ledger.register_asset(ADMIN, UNKNOWN)
        except LedgerError as exc:
            attempts.append(exc)

    harness.custody.on_settle = hostile

    ledger.deposit(ALICE, USDC, ONE_USDC)

    assert [type(exc) for exc in attempts] == [ReentrancyRejected]
    assert not ledger.is_eligible(UNKNOWN)


def test_latch_is_released_after_failures(harness: LedgerHarness) -> None:
    ledger = harness.ledger
    harness.custody.fail_next = True

    with pytest.raises(LedgerError):
        ledger.deposit(ALICE, USDC, ONE_USDC)
    with pytest.raises(LedgerError):
        ledger.withdraw(ALICE, USDC, ONE_USDC)

    ledger.deposit(ALICE, USDC, ONE_USDC)
    assert ledger.balance(ALICE, USDC) == ONE_UNIT


def test_queries_are_allowed_during_settlement(harness: LedgerHarness) -> None:
    ledger = harness.ledger
    seen: list[tuple[int, int]] = []

    def observer(direction: TransferDirection, account: AccountId, asset: AssetId, amount: int) -> None:
        seen.append((ledger.total_pool_value(), ledger.current_base_price()))

    harness.custody.on_settle = observer

    ledger.deposit(BOB, ETH, ONE_ETH)

    assert seen == [(2_000 * ONE_UNIT, 2_000 * 10**8)]
