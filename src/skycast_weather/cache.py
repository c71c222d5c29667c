"""Namespaced weather snapshot cache over a string key-value store."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from .exceptions import CacheStoreError
from .models import CacheEntry, WeatherSnapshot
from .storage import KeyValueStore

DEFAULT_PREFIX = "skycast_v3_"
FRESH_TTL_MS = 30 * 60 * 1000


def normalize_city(name: str) -> str:
    return name.strip().lower()


def is_fresh(entry: CacheEntry, now_ms: int, ttl_ms: int = FRESH_TTL_MS) -> bool:
    """Fresh while strictly younger than the TTL."""
    return now_ms - entry.timestamp < ttl_ms


class WeatherCache:
    """One CacheEntry per normalized city name, JSON-encoded into the store."""

    def __init__(
        self,
        store: KeyValueStore,
        logger: logging.Logger,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self.store = store
        self.logger = logger
        self.prefix = prefix

    def key_for(self, city: str) -> str:
        return self.prefix + normalize_city(city)

    def read(self, city: str) -> CacheEntry | None:
        """Return the stored entry, or None when absent or undecodable."""
        key = self.key_for(city)
        try:
            raw = self.store.get(key)
        except CacheStoreError as exc:
            self.logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            self.logger.warning(
                "Ignoring undecodable cache entry %s (%d validation errors)",
                key,
                exc.error_count(),
            )
            return None

    def write(self, city: str, snapshot: WeatherSnapshot, timestamp_ms: int) -> CacheEntry:
        """Overwrite the entry for ``city``; raises CacheStoreError if the store fails."""
        entry = CacheEntry(data=snapshot, timestamp=timestamp_ms)
        self.store.set(self.key_for(city), entry.model_dump_json(by_alias=True))
        return entry
