"""Read-only HTTP view of a running ledger.

Deposits and withdrawals are not exposed here; they require the caller's
identity and a settlement path that belong to the deployment, not to this
query surface.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session, sessionmaker

from api.dependencies import get_journal_repository, get_ledger
from db.repositories import JournalRepository
from domain.base_types import AccountId, AssetId
from domain.errors import (
    InputError,
    IntegrationFailure,
    LedgerError,
    OracleFailure,
    PolicyViolation,
    ReentrancyRejected,
    Unauthorized,
)
from domain.ledger import CustodyLedger
from domain.records import LedgerRecord
from utils.formatting import format_units

_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (InputError, 400),
    (Unauthorized, 403),
    (ReentrancyRejected, 409),
    (PolicyViolation, 422),
    (IntegrationFailure, 502),
    (OracleFailure, 503),
]


class AssetView(BaseModel):
    asset_id: str
    eligible: bool


class BalanceView(BaseModel):
    account_id: str
    asset_id: str
    balance: int
    balance_display: str


class PoolView(BaseModel):
    total: int
    total_display: str
    capacity: int
    available_capacity: int
    pools: dict[str, int]


class PriceView(BaseModel):
    price: int
    decimals: int


class CountersView(BaseModel):
    deposits: int
    withdrawals: int


def status_for(error: LedgerError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def create_app(ledger: CustodyLedger, session_factory: sessionmaker[Session] | None = None) -> FastAPI:
    app = FastAPI(title="custody-ledger")
    app.state.ledger = ledger
    app.state.sessionmaker = session_factory

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(
            status_code=status_for(exc),
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    @app.get("/assets")
    def list_assets(cl: Annotated[CustodyLedger, Depends(get_ledger)]) -> list[AssetView]:
        return [AssetView(asset_id=asset_id, eligible=True) for asset_id in cl.list_eligible_assets()]

    @app.get("/assets/{asset_id}")
    def get_asset(asset_id: str, cl: Annotated[CustodyLedger, Depends(get_ledger)]) -> AssetView:
        return AssetView(asset_id=asset_id, eligible=cl.is_eligible(AssetId(asset_id)))

    @app.get("/balances/{account_id}/{asset_id}")
    def get_balance(account_id: str, asset_id: str, cl: Annotated[CustodyLedger, Depends(get_ledger)]) -> BalanceView:
        balance = cl.balance(AccountId(account_id), AssetId(asset_id))
        return BalanceView(
            account_id=account_id,
            asset_id=asset_id,
            balance=balance,
            balance_display=format_units(balance),
        )

    @app.get("/pool")
    def get_pool(cl: Annotated[CustodyLedger, Depends(get_ledger)]) -> PoolView:
        total = cl.total_pool_value()
        return PoolView(
            total=total,
            total_display=format_units(total),
            capacity=cl.config.capacity,
            available_capacity=cl.available_capacity(),
            pools=cl.pool_totals(),
        )

    @app.get("/price")
    def get_price(cl: Annotated[CustodyLedger, Depends(get_ledger)]) -> PriceView:
        return PriceView(price=cl.current_base_price(), decimals=cl.feed_decimals)

    @app.get("/counters")
    def get_counters(cl: Annotated[CustodyLedger, Depends(get_ledger)]) -> CountersView:
        counters = cl.counters()
        return CountersView(deposits=counters.deposits, withdrawals=counters.withdrawals)

    @app.get("/records")
    def get_records(cl: Annotated[CustodyLedger, Depends(get_ledger)], after: int = 0) -> list[LedgerRecord]:
        return cl.records(after_sequence=after)

    @app.get("/journal")
    def get_journal(jr: Annotated[JournalRepository, Depends(get_journal_repository)]) -> list[LedgerRecord]:
        return jr.list()

    return app
