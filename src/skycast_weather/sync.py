"""Dashboard-side loading: last-city memory, notifications and periodic refresh."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import CacheStoreError, SkyCastError
from .models import Notification, NotificationKind, WeatherSnapshot
from .resilience import Sleep
from .storage import KeyValueStore
from .weather_service import WeatherService

LAST_CITY_KEY = "skycast_last_city"
SYNC_INTERVAL_SECONDS = 15 * 60


class LastCityStore:
    """Remembers the display name of the last city that loaded successfully."""

    def __init__(self, store: KeyValueStore, key: str = LAST_CITY_KEY) -> None:
        self.store = store
        self.key = key

    def load(self, default: str) -> str:
        try:
            value = self.store.get(self.key)
        except CacheStoreError:
            return default
        return value if value and value.strip() else default

    def save(self, city: str) -> None:
        self.store.set(self.key, city)


@dataclass(slots=True)
class SyncOutcome:
    snapshot: WeatherSnapshot | None
    notification: Notification | None


class DashboardSync:
    """Loads weather on demand and on a timer the way the dashboard does."""

    def __init__(
        self,
        service: WeatherService,
        last_city: LastCityStore,
        *,
        logger: logging.Logger,
        interval_seconds: float = SYNC_INTERVAL_SECONDS,
        notify: Callable[[Notification], None] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.service = service
        self.last_city = last_city
        self.logger = logger
        self.interval_seconds = interval_seconds
        self._notify = notify
        self._sleep = sleep

    def _emit(self, message: str, kind: NotificationKind) -> Notification:
        notification = Notification(message=message, kind=kind)
        if self._notify is not None:
            self._notify(notification)
        return notification

    async def load(self, city: str | None, *, auto: bool = False) -> SyncOutcome:
        """Fetch ``city``; manual loads report progress, auto loads only report failure."""
        if not isinstance(city, str) or not city.strip():
            return SyncOutcome(snapshot=None, notification=None)
        if not auto:
            self._emit("Syncing Atmosphere...", "info")
        try:
            snapshot = await self.service.fetch(city)
        except SkyCastError as exc:
            self.logger.error("Weather load for %r failed: %s", city, exc)
            return SyncOutcome(
                snapshot=None,
                notification=self._emit("Atmospheric Interruption", "error"),
            )

        try:
            self.last_city.save(snapshot.city)
        except CacheStoreError as exc:
            self.logger.warning("Could not remember last city %r: %s", snapshot.city, exc)
        notification = None if auto else self._emit("Vector Sync Complete", "success")
        return SyncOutcome(snapshot=snapshot, notification=notification)

    async def run(self, city: str, *, iterations: int | None = None) -> SyncOutcome:
        """Load ``city`` now, then replay it every interval; runs forever when iterations is None."""
        outcome = await self.load(city)
        done = 1
        while iterations is None or done < iterations:
            await self._sleep(self.interval_seconds)
            outcome = await self.load(city, auto=True)
            done += 1
        return outcome
