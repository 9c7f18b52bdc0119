from pathlib import Path
from unittest.mock import Mock

import pytest

from config import AppSettings
from domain.errors import AssetNotEligible, InsufficientBalance, Unauthorized
from main import Action, Operation, apply_operations, build_ledger, load_operations, render_summary, run
from tests.constants import ADMIN, ALICE, BOB, ETH, ONE_ETH, ONE_UNIT, UNKNOWN, USDC
from tests.helpers.ledger_harness import LedgerHarness


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "operations.csv"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_operations_parses_rows(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "account,action,asset,amount\n"
        "alice,deposit,ETH,2000000000000000000\n"
        "admin, Register ,NOPE,\n",
    )

    operations = load_operations(path)

    assert operations == [
        Operation(line=2, account_id=ALICE, action=Action.DEPOSIT, asset_id=ETH, amount=2 * ONE_ETH),
        Operation(line=3, account_id=ADMIN, action=Action.REGISTER, asset_id=UNKNOWN, amount=0),
    ]


@pytest.mark.parametrize(
    "row",
    ["alice,transfer,ETH,1", "alice,deposit,ETH,1.5", "alice,deposit"],
)
def test_load_operations_reports_bad_line(tmp_path: Path, row: str) -> None:
    path = _write(tmp_path, f"account,action,asset,amount\nalice,deposit,ETH,1\n{row}\n")

    with pytest.raises(ValueError, match=":3:"):
        load_operations(path)


def test_apply_operations_continues_after_rejections(harness: LedgerHarness) -> None:
    operations = [
        Operation(line=2, account_id=ALICE, action=Action.DEPOSIT, asset_id=ETH, amount=2 * ONE_ETH),
        Operation(line=3, account_id=ALICE, action=Action.WITHDRAW, asset_id=ETH, amount=9 * ONE_ETH // 4),
        Operation(line=4, account_id=BOB, action=Action.REGISTER, asset_id=UNKNOWN, amount=0),
        Operation(line=5, account_id=ADMIN, action=Action.DEREGISTER, asset_id=USDC, amount=0),
        Operation(line=6, account_id=BOB, action=Action.DEPOSIT, asset_id=USDC, amount=1),
        Operation(line=7, account_id=ALICE, action=Action.WITHDRAW, asset_id=ETH, amount=ONE_ETH),
    ]

    outcomes = apply_operations(harness.ledger, operations)

    assert [outcome.ok for outcome in outcomes] == [True, False, False, True, False, True]
    assert isinstance(outcomes[1].error, InsufficientBalance)
    assert isinstance(outcomes[2].error, Unauthorized)
    assert isinstance(outcomes[4].error, AssetNotEligible)
    assert harness.ledger.balance(ALICE, ETH) == 2_000 * ONE_UNIT


def test_render_summary_lists_rejections(harness: LedgerHarness, capsys: pytest.CaptureFixture[str]) -> None:
    operations = [
        Operation(line=2, account_id=ALICE, action=Action.DEPOSIT, asset_id=ETH, amount=2 * ONE_ETH),
        Operation(line=3, account_id=ALICE, action=Action.WITHDRAW, asset_id=ETH, amount=9 * ONE_ETH // 4),
    ]
    outcomes = apply_operations(harness.ledger, operations)

    render_summary(harness.ledger, outcomes)

    output = capsys.readouterr().out
    assert "Operations applied: 1" in output
    assert "Operations rejected: 1" in output
    assert "Total pool value: 4000.000000" in output
    assert "line 3: withdraw ETH by alice -> InsufficientBalance" in output


def test_build_ledger_wires_settings() -> None:
    settings = AppSettings(
        gateway_api_key="token", capacity=100 * ONE_UNIT, withdrawal_limit=10 * ONE_UNIT, admins=[ADMIN]
    )
    client = Mock()

    ledger = build_ledger(settings, client)

    assert ledger.config.capacity == 100 * ONE_UNIT
    assert ledger.list_eligible_assets() == ["ETH"]
    assert ledger.feed_decimals == 8
    client.feed_decimals.assert_not_called()


def test_run_keeps_existing_journal_when_gateway_is_not_configured(tmp_path: Path) -> None:
    db_file = tmp_path / "journal.db"
    db_file.write_bytes(b"previous run")
    path = _write(tmp_path, "account,action,asset,amount\nalice,deposit,ETH,1\n")
    settings = AppSettings(gateway_api_key="", db_file=db_file)

    with pytest.raises(ValueError, match="api_key"):
        run(path, settings=settings)

    assert db_file.read_bytes() == b"previous run"
