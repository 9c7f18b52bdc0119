from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from .errors import ReentrancyRejected

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Single latch held for the duration of one externally triggered operation.

    Usage::

        with guard.hold("deposit"):
            ...

    The latch is released on every exit path, including exceptions.
    """

    def __init__(self) -> None:
        self._held_by: str | None = None

    @property
    def held(self) -> bool:
        return self._held_by is not None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._held_by is not None:
            logger.warning("Rejected %s while %s is in flight", operation, self._held_by)
            raise ReentrancyRejected(operation)
        self._held_by = operation
        try:
            yield
        finally:
            self._held_by = None


__all__ = ["ReentrancyGuard"]
