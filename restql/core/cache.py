"""In-memory cache with per-entry expiry."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    data: Any
    expiry: float


class CacheManager:
    """Key/value store whose entries expire after a TTL.

    Expired entries are dropped lazily by `get`/`has`; `size` and `keys`
    purge every expired entry first. TTLs are in seconds.

    Example:
        cache = CacheManager(default_ttl=300)
        cache.set("user:{}", result)
        cache.get("user:{}")
    """

    def __init__(
        self,
        default_ttl: float,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._logger = logger or logging.getLogger(__name__)

    def set(self, key: str, value: Any, ttl: float | None = None):
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(data=value, expiry=self._clock() + ttl)
        self._logger.debug("Set cache item: %s", key)

    def get(self, key: str) -> Any | None:
        entry = self._live_entry(key)
        if entry is None:
            self._logger.debug("Cache miss: %s", key)
            return None
        self._logger.debug("Cache hit: %s", key)
        return entry.data

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def invalidate(self, key: str):
        self._entries.pop(key, None)
        self._logger.debug("Invalidated cache item: %s", key)

    def invalidate_prefix(self, prefix: str, ignore_case: bool = False) -> int:
        """Drop every entry whose key starts with `prefix`; return the count."""
        if ignore_case:
            prefix = prefix.lower()
            matching = [key for key in self._entries if key.lower().startswith(prefix)]
        else:
            matching = [key for key in self._entries if key.startswith(prefix)]
        for key in matching:
            del self._entries[key]
        if matching:
            self._logger.debug("Invalidated %d cache item(s) with prefix %s", len(matching), prefix)
        return len(matching)

    def clear(self):
        self._entries.clear()
        self._logger.debug("Cache cleared")

    def size(self) -> int:
        self._remove_expired()
        return len(self._entries)

    def keys(self) -> list[str]:
        self._remove_expired()
        return list(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return self.size()

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expiry:
            del self._entries[key]
            self._logger.debug("Expired cache item removed: %s", key)
            return None
        return entry

    def _remove_expired(self):
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expiry]
        for key in expired:
            del self._entries[key]
        if expired:
            self._logger.debug("Removed %d expired cache item(s)", len(expired))
