from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from api.api import create_app, status_for
from db.repositories import JournalRepository
from domain.errors import (
    CapacityExceeded,
    OracleInvalid,
    ReentrancyRejected,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from tests.constants import ALICE, ETH, ETH_PRICE, NOW, ONE_ETH, ONE_UNIT, ONE_USDC, USDC
from tests.helpers.ledger_harness import LedgerHarness


def test_assets_and_balances(harness: LedgerHarness) -> None:
    harness.ledger.deposit(ALICE, ETH, 2 * ONE_ETH)
    client = TestClient(create_app(harness.ledger))

    assets = client.get("/assets").json()
    assert [asset["asset_id"] for asset in assets] == ["ETH", "USDC", "DAI", "EURS"]
    assert client.get("/assets/NOPE").json() == {"asset_id": "NOPE", "eligible": False}

    balance = client.get(f"/balances/{ALICE}/{ETH}").json()
    assert balance["balance"] == 4_000 * ONE_UNIT
    assert balance["balance_display"] == "4000.000000"


def test_pool_price_and_counters(harness: LedgerHarness) -> None:
    harness.ledger.deposit(ALICE, USDC, 250 * ONE_USDC)
    client = TestClient(create_app(harness.ledger))

    pool = client.get("/pool").json()
    assert pool["total"] == 250 * ONE_UNIT
    assert pool["available_capacity"] == pool["capacity"] - 250 * ONE_UNIT
    assert pool["pools"] == {"USDC": 250 * ONE_UNIT}

    assert client.get("/price").json() == {"price": ETH_PRICE, "decimals": 8}
    assert client.get("/counters").json() == {"deposits": 1, "withdrawals": 0}


def test_records_after_sequence(harness: LedgerHarness) -> None:
    harness.ledger.deposit(ALICE, USDC, ONE_USDC)
    client = TestClient(create_app(harness.ledger))

    records = client.get("/records", params={"after": 3}).json()

    assert [record["sequence"] for record in records] == [4]
    assert records[0]["record_type"] == "DEPOSIT"


def test_stale_price_maps_to_service_unavailable(harness: LedgerHarness) -> None:
    harness.feed.set_reading(updated_at=NOW - 7200)
    client = TestClient(create_app(harness.ledger))

    response = client.get("/price")

    assert response.status_code == 503
    assert response.json()["error"] == "PriceStale"


def test_journal_reads_persisted_records(harness: LedgerHarness, test_session: Session) -> None:
    JournalRepository(test_session).create_many(harness.ledger.records())
    client = TestClient(create_app(harness.ledger, sessionmaker(test_session.get_bind())))

    journal = client.get("/journal").json()

    assert [record["asset_id"] for record in journal] == ["USDC", "DAI", "EURS"]


def test_journal_without_database_is_not_found(harness: LedgerHarness) -> None:
    client = TestClient(create_app(harness.ledger))
    assert client.get("/journal").status_code == 404


def test_status_for_error_categories() -> None:
    assert status_for(ZeroAmount()) == 400
    assert status_for(Unauthorized(caller="eve", action="register_asset")) == 403
    assert status_for(ReentrancyRejected("deposit")) == 409
    assert status_for(CapacityExceeded(attempted=2, available=1)) == 422
    assert status_for(TransferFailed(direction="PULL_IN", account_id="a", asset_id="b", raw_amount=1)) == 502
    assert status_for(OracleInvalid(0)) == 503
