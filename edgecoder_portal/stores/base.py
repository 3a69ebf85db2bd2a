"""Shared plumbing for the individual stores."""
from __future__ import annotations

import time
from typing import Callable

from ..database import Database

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Store:
    """Base for stores: one shared Database, its Settings and an injectable clock."""

    def __init__(self, db: Database, clock: Clock = now_ms) -> None:
        self._db = db
        self._settings = db.settings
        self._clock = clock

    def _expiry(self, expires_at_ms: int | None, ttl_ms: int) -> int:
        """Use the explicit expiry, or now plus the configured lifetime."""
        if expires_at_ms is not None:
            return expires_at_ms
        return self._clock() + ttl_ms
