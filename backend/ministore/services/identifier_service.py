# Overview: Record identifier generation; timestamp-derived, strictly increasing ids.

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Iterable


def epoch_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


class IdSequence:
    """
    Hands out integer ids derived from the creation time in epoch milliseconds.

    Two ids requested within the same millisecond (a bulk restock writes many
    history rows at once) would collide, so every id is at least one greater
    than the previous one handed out or observed.
    """

    def __init__(self, floor: int = 0):
        self._last = floor
        self._lock = threading.Lock()

    def observe(self, ids: Iterable[int]) -> None:
        """Raise the floor above ids already present in loaded data."""
        with self._lock:
            for value in ids:
                if isinstance(value, int) and value > self._last:
                    self._last = value

    def next_id(self, now: datetime) -> int:
        with self._lock:
            candidate = max(epoch_millis(now), self._last + 1)
            self._last = candidate
            return candidate
