from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .base_types import AssetId
from .errors import AlreadyRegistered, BaseAssetLocked, InvalidAsset, LedgerError, NotRegistered

logger = logging.getLogger(__name__)


class AssetMetadataSource(Protocol):
    """Lookup of an asset's native precision (number of fractional digits)."""

    def precision_of(self, asset_id: AssetId) -> int: ...


@dataclass
class RegistryEntry:
    eligible: bool
    precision: int | None = None

    @property
    def cached(self) -> bool:
        return self.precision is not None


class AssetRegistry:
    """Eligible assets plus their lazily resolved native precision.

    Precision is fetched from the metadata source on first use and cached.
    The cached value is treated as fixed for the asset's lifetime; only
    ``override_precision`` replaces it.
    """

    def __init__(self, *, metadata: AssetMetadataSource, base_asset_id: AssetId, base_precision: int) -> None:
        self._metadata = metadata
        self.base_asset_id = base_asset_id
        self._entries: dict[AssetId, RegistryEntry] = {
            base_asset_id: RegistryEntry(eligible=True, precision=base_precision),
        }

    def is_eligible(self, asset_id: AssetId) -> bool:
        entry = self._entries.get(asset_id)
        return entry is not None and entry.eligible

    def entry(self, asset_id: AssetId) -> RegistryEntry | None:
        return self._entries.get(asset_id)

    def register(self, asset_id: AssetId) -> None:
        entry = self._entries.get(asset_id)
        if entry is None:
            self._entries[asset_id] = RegistryEntry(eligible=True)
            return
        if entry.eligible:
            raise AlreadyRegistered(asset_id)
        # Re-enabling keeps the previously cached precision.
        entry.eligible = True

    def deregister(self, asset_id: AssetId) -> None:
        if asset_id == self.base_asset_id:
            raise BaseAssetLocked(asset_id)
        entry = self._entries.get(asset_id)
        if entry is None or not entry.eligible:
            raise NotRegistered(asset_id)
        entry.eligible = False

    def resolve_precision(self, asset_id: AssetId) -> int:
        entry = self._entries.get(asset_id)
        if entry is not None and entry.precision is not None:
            return entry.precision

        try:
            precision = self._metadata.precision_of(asset_id)
        except LedgerError:
            raise
        except Exception as exc:
            raise InvalidAsset(asset_id, detail=str(exc)) from exc
        if not isinstance(precision, int) or isinstance(precision, bool) or precision < 0:
            raise InvalidAsset(asset_id, detail=f"unusable precision {precision!r}")

        if entry is None:
            # Never registered: nothing to cache against.
            return precision
        entry.precision = precision
        logger.info("Cached precision %d for asset %s", precision, asset_id)
        return precision

    def override_precision(self, asset_id: AssetId, precision: int) -> None:
        if asset_id == self.base_asset_id:
            raise BaseAssetLocked(asset_id)
        if precision < 0:
            msg = "precision must be >= 0"
            raise ValueError(msg)
        entry = self._entries.get(asset_id)
        if entry is None:
            raise NotRegistered(asset_id)
        logger.warning("Overriding precision for asset %s: %s -> %d", asset_id, entry.precision, precision)
        entry.precision = precision

    def list_eligible(self) -> list[AssetId]:
        return [asset_id for asset_id, entry in self._entries.items() if entry.eligible]

    def known_assets(self) -> list[AssetId]:
        return list(self._entries)


__all__ = ["AssetMetadataSource", "AssetRegistry", "RegistryEntry"]
