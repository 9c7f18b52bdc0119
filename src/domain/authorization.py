from __future__ import annotations

from typing import Iterable, Protocol

from .base_types import AccountId
from .errors import Unauthorized


class Authorizer(Protocol):
    def require_admin(self, caller: AccountId, action: str) -> None: ...


class AllowListAuthorizer(Authorizer):
    def __init__(self, admins: Iterable[str]) -> None:
        self._admins = frozenset(admins)

    def require_admin(self, caller: AccountId, action: str) -> None:
        if caller not in self._admins:
            raise Unauthorized(caller=caller, action=action)


__all__ = ["AllowListAuthorizer", "Authorizer"]
