from typing import Annotated, Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from db.repositories import JournalRepository
from domain.ledger import CustodyLedger


def get_ledger(request: Request) -> CustodyLedger:
    return request.app.state.ledger


def get_session(request: Request) -> Generator[Session, None, None]:
    session_factory = request.app.state.sessionmaker
    if session_factory is None:
        raise HTTPException(status_code=404, detail="Journal is not configured")
    with session_factory() as session:
        yield session


def get_journal_repository(session: Annotated[Session, Depends(get_session)]) -> JournalRepository:
    return JournalRepository(session)
