"""Failure taxonomy for the custody ledger.

Every error aborts the operation that raised it and leaves ledger state as it
was before the operation began. Categories:

- ``InputError``: malformed request (zero amount)
- ``PolicyViolation``: limits, balances, registry rules
- ``OracleFailure``: value feed returned an unusable reading
- ``IntegrationFailure``: asset metadata or settlement failed
- ``ReentrancyRejected``: nested operation while another one is in flight
- ``Unauthorized``: administrative action by a non-admin caller
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger failures."""


class InputError(LedgerError):
    pass


class PolicyViolation(LedgerError):
    pass


class OracleFailure(LedgerError):
    pass


class IntegrationFailure(LedgerError):
    pass


class ZeroAmount(InputError):
    def __init__(self, *, raw_amount: int = 0) -> None:
        self.raw_amount = raw_amount
        if raw_amount:
            super().__init__(f"Amount {raw_amount} is worth zero ledger units")
        else:
            super().__init__("Amount must be greater than zero")


class InvalidAccount(InputError):
    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Invalid account id: {account_id!r}")


class CapacityExceeded(PolicyViolation):
    def __init__(self, *, attempted: int, available: int) -> None:
        self.attempted = attempted
        self.available = available
        super().__init__(f"Capacity exceeded: attempted={attempted} available={available}")


class WithdrawalLimitExceeded(PolicyViolation):
    def __init__(self, *, attempted: int, limit: int) -> None:
        self.attempted = attempted
        self.limit = limit
        super().__init__(f"Withdrawal limit exceeded: attempted={attempted} limit={limit}")


class InsufficientBalance(PolicyViolation):
    def __init__(self, *, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient balance: requested={requested} available={available}")


class AssetNotEligible(PolicyViolation):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Asset is not eligible for deposit: {asset_id}")


class AlreadyRegistered(PolicyViolation):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Asset already registered: {asset_id}")


class NotRegistered(PolicyViolation):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Asset not registered: {asset_id}")


class BaseAssetLocked(PolicyViolation):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Base asset cannot be deregistered or re-scaled: {asset_id}")


class PrecisionLocked(PolicyViolation):
    def __init__(self, asset_id: str, *, pool_total: int) -> None:
        self.asset_id = asset_id
        self.pool_total = pool_total
        super().__init__(f"Precision of {asset_id} is locked while pool total is {pool_total}")


class OracleInvalid(OracleFailure):
    def __init__(self, answer: int | None, *, detail: str | None = None) -> None:
        self.answer = answer
        message = f"Value feed returned an invalid price: {answer}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PriceStale(OracleFailure):
    def __init__(
        self,
        reason: str,
        *,
        round_id: int,
        answered_in_round: int,
        updated_at: int,
        checked_at: int,
    ) -> None:
        self.reason = reason
        self.round_id = round_id
        self.answered_in_round = answered_in_round
        self.updated_at = updated_at
        self.checked_at = checked_at
        super().__init__(
            f"Stale price ({reason}): round_id={round_id} answered_in_round={answered_in_round} "
            f"updated_at={updated_at} checked_at={checked_at}"
        )


class InvalidAsset(IntegrationFailure):
    def __init__(self, asset_id: str, *, detail: str | None = None) -> None:
        self.asset_id = asset_id
        message = f"Unable to resolve asset metadata: {asset_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class TransferFailed(IntegrationFailure):
    def __init__(
        self,
        *,
        direction: str,
        account_id: str,
        asset_id: str,
        raw_amount: int,
        detail: str | None = None,
    ) -> None:
        self.direction = direction
        self.account_id = account_id
        self.asset_id = asset_id
        self.raw_amount = raw_amount
        message = f"Transfer failed: direction={direction} account={account_id} asset={asset_id} amount={raw_amount}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ReentrancyRejected(LedgerError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Reentrant call rejected: {operation}")


class Unauthorized(LedgerError):
    def __init__(self, *, caller: str, action: str) -> None:
        self.caller = caller
        self.action = action
        super().__init__(f"Caller {caller} is not allowed to {action}")


__all__ = [
    "AlreadyRegistered",
    "AssetNotEligible",
    "BaseAssetLocked",
    "CapacityExceeded",
    "InputError",
    "InsufficientBalance",
    "IntegrationFailure",
    "InvalidAccount",
    "InvalidAsset",
    "LedgerError",
    "NotRegistered",
    "OracleFailure",
    "OracleInvalid",
    "PolicyViolation",
    "PrecisionLocked",
    "PriceStale",
    "ReentrancyRejected",
    "TransferFailed",
    "Unauthorized",
    "WithdrawalLimitExceeded",
    "ZeroAmount",
]
