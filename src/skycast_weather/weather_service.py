"""Weather fetch orchestration: cache policy, request dedup, retrying model calls."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Callable
from typing import Any

from .cache import FRESH_TTL_MS, WeatherCache, is_fresh, normalize_city
from .coordinator import RequestCoordinator
from .exceptions import (
    CacheStoreError,
    FetchFailedError,
    InvalidInputError,
    ModelServiceError,
    ParseFailedError,
)
from .genai import GenerativeModelClient, ModelRequest
from .models import WeatherSnapshot
from .normalize import normalize_snapshot, parse_json_body
from .resilience import EXTENDED_POLICY, RetryPolicy, Sleep, call_with_retry

_PERIOD_FIELDS = (
    "temp, feelsLike, condition, precip, precipAmount, snowAmount, humidity, pressure, "
    "uvIndex, visibility, uWind, vWind, cloudCover, aqi, thunderstorm"
)


def build_weather_prompt(city: str) -> str:
    """Prompt for current conditions, a 7-day forecast and a 24-hour series."""
    return (
        f"Latest weather JSON for {city}. Include 7 days for forecast and 24 hours for hourly.\n"
        "{\n"
        '  "city": string, "temp": num, "feelsLike": num, "condition": string, '
        '"description": string,\n'
        '  "humidity": num, "pressure": num, "uvIndex": num, "visibility": num, '
        '"timezone": string,\n'
        '  "uWind": num, "vWind": num, "high": num, "low": num, "precipAmount": num, '
        '"snowAmount": num,\n'
        '  "cloudCover": num, "aqi": num, "alerts": string[], "thunderstorm": string,\n'
        f'  "forecast": [7]{{day, date, high, low, {_PERIOD_FIELDS}}},\n'
        f'  "hourly": [24]{{time, {_PERIOD_FIELDS}}}\n'
        "}"
    )


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class WeatherService:
    """Serves snapshots with stale-while-revalidate caching and one fetch per city."""

    def __init__(
        self,
        client: GenerativeModelClient,
        cache: WeatherCache,
        coordinator: RequestCoordinator[WeatherSnapshot] | None = None,
        *,
        logger: logging.Logger,
        model: str,
        policy: RetryPolicy = EXTENDED_POLICY,
        fresh_ttl_ms: int = FRESH_TTL_MS,
        clock_ms: Callable[[], int] = _epoch_ms,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.client = client
        self.cache = cache
        self.coordinator: RequestCoordinator[WeatherSnapshot] = (
            coordinator if coordinator is not None else RequestCoordinator()
        )
        self.logger = logger
        self.model = model
        self.policy = policy
        self.fresh_ttl_ms = fresh_ttl_ms
        self._clock_ms = clock_ms
        self._sleep = sleep
        self._rng = rng

    async def fetch(self, city: Any) -> WeatherSnapshot:
        """Return the snapshot for ``city``.

        A fresh cache entry is returned as-is. A stale entry is returned
        immediately while a background refresh runs. Only a missing entry
        makes the caller wait, and concurrent waiters share one fetch.
        """
        display_city, key = self._validate_city(city)

        entry = self.cache.read(key)
        if entry is not None:
            if is_fresh(entry, self._clock_ms(), self.fresh_ttl_ms):
                self.logger.debug("Cache hit (fresh) for %s", key)
            else:
                self.logger.info("Cache hit (stale) for %s; revalidating in background", key)
                self.refresh_in_background(display_city)
            return entry.data

        task = self.coordinator.get(key)
        if task is None:
            self.logger.info("Cache miss for %s; fetching", key)
            task = self._begin_fetch(display_city, key)
        else:
            self.logger.debug("Joining in-flight fetch for %s", key)
        # One caller being cancelled must not cancel the shared fetch.
        return await asyncio.shield(task)

    def refresh_in_background(self, city: Any) -> asyncio.Task[WeatherSnapshot]:
        """Start (or reuse) a detached fetch whose only effect is the cache write."""
        display_city, key = self._validate_city(city)
        task = self.coordinator.get(key)
        if task is not None:
            return task
        return self._begin_fetch(display_city, key)

    def _begin_fetch(self, display_city: str, key: str) -> asyncio.Task[WeatherSnapshot]:
        task = self.coordinator.begin(key, self._fetch_remote(display_city, key))
        # Retrieve the outcome even when every awaiting caller was cancelled.
        task.add_done_callback(self._consume_outcome)
        return task

    def _consume_outcome(self, task: asyncio.Task[WeatherSnapshot]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.debug("Fetch task settled with error: %s", exc)

    @staticmethod
    def _validate_city(city: Any) -> tuple[str, str]:
        if not isinstance(city, str) or not city.strip():
            raise InvalidInputError("City name is required.")
        return city.strip(), normalize_city(city)

    async def _fetch_remote(self, display_city: str, key: str) -> WeatherSnapshot:
        request = ModelRequest(
            model=self.model,
            contents=build_weather_prompt(display_city),
            response_mime_type="application/json",
            use_search_grounding=True,
        )
        try:
            response = await call_with_retry(
                lambda: self.client.generate(request),
                self.policy,
                logger=self.logger,
                context=f"Weather fetch for {key}",
                sleep=self._sleep,
                rng=self._rng,
            )
        except ModelServiceError as exc:
            self.logger.error("Weather fetch for %s failed: %s", key, exc)
            raise FetchFailedError(
                f"Weather fetch for {display_city!r} failed: {exc}",
                status_code=exc.status_code,
            ) from exc
        except Exception as exc:
            self.logger.error(
                "Weather fetch for %s failed (%s): %s", key, type(exc).__name__, exc
            )
            raise FetchFailedError(f"Weather fetch for {display_city!r} failed: {exc}") from exc

        try:
            snapshot = normalize_snapshot(parse_json_body(response.text), response.sources)
        except ParseFailedError as exc:
            self.logger.error("Weather payload for %s could not be parsed: %s", key, exc)
            raise

        try:
            self.cache.write(key, snapshot, self._clock_ms())
        except CacheStoreError as exc:
            self.logger.error("Cache write failed for %s: %s", key, exc)

        self.logger.info(
            "Fetched weather for %s (city=%s forecast=%d hourly=%d sources=%d)",
            key,
            snapshot.city,
            len(snapshot.forecast),
            len(snapshot.hourly),
            len(snapshot.sources),
        )
        return snapshot
