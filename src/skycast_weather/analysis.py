"""Synthesized historical/predicted series plus series built from a snapshot."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import date
from typing import Any, Literal

from pydantic import TypeAdapter, ValidationError

from .exceptions import SkyCastError
from .genai import GenerativeModelClient, ModelRequest
from .models import (
    PARAMETER_CATALOG,
    RESOLUTIONS,
    AnalysisPoint,
    SeriesSummary,
    WeatherSnapshot,
)
from .normalize import parse_json_body
from .resilience import BOUNDED_POLICY, RetryPolicy, Sleep, call_with_retry

_POINTS = TypeAdapter(list[AnalysisPoint])

SeriesKind = Literal["historical", "predicted"]

# camelCase parameter id -> snake_case model attribute
_ATTRIBUTES = {
    "temp": "temp",
    "feelsLike": "feels_like",
    "humidity": "humidity",
    "windSpeed": "wind_speed",
    "windDirection": "wind_direction",
    "pressure": "pressure",
    "precipAmount": "precip_amount",
    "cloudCover": "cloud_cover",
    "visibility": "visibility",
    "aqi": "aqi",
    "snowAmount": "snow_amount",
    "uWind": "u_wind",
    "vWind": "v_wind",
}


def build_series_prompt(
    kind: SeriesKind,
    city: str,
    parameter: str,
    start_date: str,
    end_date: str,
    resolution: str,
) -> str:
    info = PARAMETER_CATALOG[parameter]
    subject = "historical weather data" if kind == "historical" else "predicted weather trends"
    return (
        f"Generate {subject} for {city} for the parameter {parameter} "
        f"({info.label}, {info.unit}) from {start_date} to {end_date} in {resolution} intervals. "
        "Return as JSON array of {label: string, value: number}."
    )


class AnalysisService:
    """One model call per series; failures come back as an empty list."""

    def __init__(
        self,
        client: GenerativeModelClient,
        *,
        logger: logging.Logger,
        model: str,
        policy: RetryPolicy = BOUNDED_POLICY,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.client = client
        self.logger = logger
        self.model = model
        self.policy = policy
        self._sleep = sleep
        self._rng = rng

    async def fetch_historical(
        self,
        city: str,
        parameter: str,
        start_date: str,
        end_date: str,
        resolution: str,
    ) -> list[AnalysisPoint]:
        return await self._fetch_series(
            "historical", city, parameter, start_date, end_date, resolution
        )

    async def fetch_predicted(
        self,
        city: str,
        parameter: str,
        start_date: str,
        end_date: str,
        resolution: str,
    ) -> list[AnalysisPoint]:
        return await self._fetch_series(
            "predicted", city, parameter, start_date, end_date, resolution
        )

    async def _fetch_series(
        self,
        kind: SeriesKind,
        city: str,
        parameter: str,
        start_date: str,
        end_date: str,
        resolution: str,
    ) -> list[AnalysisPoint]:
        problem = self._validate(city, parameter, start_date, end_date, resolution)
        if problem is not None:
            self.logger.warning("Skipping %s series request: %s", kind, problem)
            return []

        request = ModelRequest(
            model=self.model,
            contents=build_series_prompt(
                kind, city.strip(), parameter, start_date, end_date, resolution
            ),
            response_mime_type="application/json",
        )
        try:
            response = await call_with_retry(
                lambda: self.client.generate(request),
                self.policy,
                logger=self.logger,
                context=f"{kind.capitalize()} series for {city.strip()}",
                sleep=self._sleep,
                rng=self._rng,
            )
            points = _POINTS.validate_python(parse_json_body(response.text, default="[]"))
        except (SkyCastError, ValidationError) as exc:
            self.logger.warning(
                "%s series for %s/%s unavailable: %s", kind, city, parameter, exc
            )
            return []
        except Exception as exc:
            self.logger.warning(
                "%s series for %s/%s failed unexpectedly (%s): %s",
                kind,
                city,
                parameter,
                type(exc).__name__,
                exc,
            )
            return []
        return points

    @staticmethod
    def _validate(
        city: Any,
        parameter: str,
        start_date: str,
        end_date: str,
        resolution: str,
    ) -> str | None:
        if not isinstance(city, str) or not city.strip():
            return "city name is required"
        if parameter not in PARAMETER_CATALOG:
            return f"unknown parameter {parameter!r}"
        if resolution not in RESOLUTIONS:
            return f"unknown resolution {resolution!r}"
        try:
            start = date.fromisoformat(start_date)
            end = date.fromisoformat(end_date)
        except (TypeError, ValueError):
            return f"dates must be ISO formatted (got {start_date!r}, {end_date!r})"
        if start > end:
            return f"start date {start_date} is after end date {end_date}"
        return None


def live_series(snapshot: WeatherSnapshot, parameter: str) -> list[AnalysisPoint]:
    """24 hourly points for ``parameter`` labelled by clock time."""
    attribute = _ATTRIBUTES[parameter]
    return [
        AnalysisPoint(label=hour.time, value=float(getattr(hour, attribute) or 0))
        for hour in snapshot.hourly
    ]


def forecast_series(snapshot: WeatherSnapshot, parameter: str) -> list[AnalysisPoint]:
    """7 daily points for ``parameter`` labelled by day name."""
    attribute = _ATTRIBUTES[parameter]
    return [
        AnalysisPoint(label=day.day, value=float(getattr(day, attribute) or 0))
        for day in snapshot.forecast
    ]


def summarize(points: list[AnalysisPoint]) -> SeriesSummary:
    # Peak and low include 0 as a floor/ceiling, matching the dashboard tiles.
    values = [point.value for point in points]
    return SeriesSummary(
        peak=max([*values, 0.0]),
        mean=sum(values) / (len(values) or 1),
        low=min([*values, 0.0]),
        count=len(values),
    )
