from __future__ import annotations

import logging

from domain.base_types import AccountId, AssetId, FeedId
from domain.errors import InvalidAsset, OracleInvalid, TransferFailed
from domain.registry import AssetMetadataSource
from domain.transfers import TransferBoundary, TransferDirection
from domain.value_feed import FeedReading, ValueFeed

from .gateway_client import GatewayAPIError, GatewayClient

logger = logging.getLogger(__name__)


class GatewayValueFeed(ValueFeed):
    def __init__(self, *, client: GatewayClient, feed_id: FeedId, decimals: int | None = None) -> None:
        self.client = client
        self.feed_id = feed_id
        self.decimals = decimals if decimals is not None else client.feed_decimals(feed_id)

    def latest_round_data(self) -> FeedReading:
        try:
            return self.client.latest_round(self.feed_id)
        except GatewayAPIError as exc:
            logger.warning("Value feed %s unavailable: %s", self.feed_id, exc)
            raise OracleInvalid(None, detail=str(exc)) from exc


class GatewayAssetMetadata(AssetMetadataSource):
    def __init__(self, *, client: GatewayClient) -> None:
        self.client = client

    def precision_of(self, asset_id: AssetId) -> int:
        try:
            return self.client.asset_precision(asset_id)
        except GatewayAPIError as exc:
            logger.warning("Metadata lookup failed for asset %s: %s", asset_id, exc)
            raise InvalidAsset(asset_id, detail=str(exc)) from exc


class GatewayTransferBoundary(TransferBoundary):
    def __init__(self, *, client: GatewayClient) -> None:
        self.client = client

    def pull_in(self, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> None:
        self._transfer(TransferDirection.PULL_IN, account_id, asset_id, raw_amount)

    def push_out(self, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> None:
        self._transfer(TransferDirection.PUSH_OUT, account_id, asset_id, raw_amount)

    def _transfer(self, direction: TransferDirection, account_id: AccountId, asset_id: AssetId, raw_amount: int) -> None:
        try:
            transfer_id = self.client.transfer(
                direction=direction,
                account_id=account_id,
                asset_id=asset_id,
                raw_amount=raw_amount,
            )
        except GatewayAPIError as exc:
            logger.warning("Transfer %s failed for account=%s asset=%s: %s", direction, account_id, asset_id, exc)
            raise TransferFailed(
                direction=direction.value,
                account_id=account_id,
                asset_id=asset_id,
                raw_amount=raw_amount,
                detail=str(exc),
            ) from exc
        logger.info("Transfer %s settled as %s", direction, transfer_id or "<no id>")


__all__ = ["GatewayAssetMetadata", "GatewayTransferBoundary", "GatewayValueFeed"]
