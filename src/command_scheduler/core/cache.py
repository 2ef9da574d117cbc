"""
Expiring in-process memo.

The job manager keeps command name → job id here so that repeated
``find_by_command`` calls in one process skip the store for an hour.
Entries are never trusted blindly: the caller re-reads the job and drops
the entry when it no longer matches.

Tags:
    cache, ttl
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Key → value map whose entries expire ``ttl_seconds`` after they are set.

    Expired entries are dropped when read.  ``clock`` defaults to
    ``time.monotonic`` and is injectable for tests.

    Example:
        memo = TTLCache(ttl_seconds=3600)
        memo.set("report:generate", 42)
        memo.get("report:generate")   # 42 for the next hour
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["TTLCache"]
