from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Protocol

from .base_types import FeedId
from .decimals import normalize
from .errors import OracleInvalid, PriceStale

DEFAULT_HEARTBEAT_SECONDS = 3600


@dataclass(frozen=True)
class FeedReading:
    """Latest answer reported by a value feed.

    ``answered_in_round`` is the round in which ``answer`` was last confirmed;
    a value lower than ``round_id`` means the answer was carried over.
    """

    round_id: int
    answer: int
    updated_at: int
    answered_in_round: int


class ValueFeed(Protocol):
    feed_id: FeedId
    decimals: int

    def latest_round_data(self) -> FeedReading: ...


class ValueFeedAdapter:
    """Validate feed readings before the ledger prices anything with them."""

    def __init__(
        self,
        feed: ValueFeed,
        *,
        heartbeat_seconds: int = DEFAULT_HEARTBEAT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if heartbeat_seconds <= 0:
            msg = "heartbeat_seconds must be > 0"
            raise ValueError(msg)
        self.feed = feed
        self.heartbeat_seconds = heartbeat_seconds
        self._clock = clock

    def with_feed(self, feed: ValueFeed) -> ValueFeedAdapter:
        return ValueFeedAdapter(feed, heartbeat_seconds=self.heartbeat_seconds, clock=self._clock)

    @property
    def feed_id(self) -> FeedId:
        return self.feed.feed_id

    @property
    def decimals(self) -> int:
        return self.feed.decimals

    def current_price(self) -> int:
        reading = self.feed.latest_round_data()
        if reading.answer <= 0:
            raise OracleInvalid(reading.answer)

        now = int(self._clock())
        if now - reading.updated_at > self.heartbeat_seconds:
            raise self._stale("heartbeat exceeded", reading, now)
        if reading.answered_in_round < reading.round_id:
            raise self._stale("answered in earlier round", reading, now)
        return reading.answer

    def value_of(self, raw_amount: int, asset_precision: int) -> int:
        """Ledger-unit value of ``raw_amount`` of the priced asset."""
        price = self.current_price()
        return normalize(raw_amount * price, asset_precision + self.decimals)

    @staticmethod
    def _stale(reason: str, reading: FeedReading, now: int) -> PriceStale:
        return PriceStale(
            reason,
            round_id=reading.round_id,
            answered_in_round=reading.answered_in_round,
            updated_at=reading.updated_at,
            checked_at=now,
        )


__all__ = ["DEFAULT_HEARTBEAT_SECONDS", "FeedReading", "ValueFeed", "ValueFeedAdapter"]
