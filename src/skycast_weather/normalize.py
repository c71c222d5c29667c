"""Ingestion normalization: raw model JSON to typed weather snapshots."""

from __future__ import annotations

import json
import math
import re
from typing import Any

from pydantic import ValidationError

from .exceptions import ParseFailedError
from .models import ForecastDay, GroundingSource, HourlyForecast, WeatherSnapshot

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)

# Fields the model may omit; "||" fields also treat 0/NaN-like falsy input as absent.
_FALSY_DEFAULTS: dict[str, Any] = {"precipAmount": 0, "snowAmount": 0}
_NULL_DEFAULTS: dict[str, Any] = {"cloudCover": 0, "aqi": 0, "thunderstorm": "None"}
# Numeric fields; a value that does not parse as a finite number is dropped
# so the model default applies instead of failing the whole snapshot.
_NUMERIC_FIELDS = (
    "temp",
    "feelsLike",
    "humidity",
    "pressure",
    "uvIndex",
    "visibility",
    "precip",
    "precipAmount",
    "snowAmount",
    "cloudCover",
    "aqi",
    "high",
    "low",
)


def wind_metrics(u: float, v: float) -> tuple[float, int]:
    """Return (speed, direction) derived from zonal/meridional components."""
    speed = math.sqrt(u * u + v * v)
    direction = (math.degrees(math.atan2(-u, -v)) + 360) % 360
    # Math.round semantics (half-up); 359.5 and above wrap to 0.
    return round(speed, 2), int(math.floor(direction + 0.5)) % 360


def parse_json_body(text: str | None, *, default: str = "{}") -> Any:
    """Decode a model text body, tolerating a surrounding Markdown code fence."""
    candidate = (text or "").strip() or default
    fenced = _FENCE_RE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        return json.loads(candidate)
    except ValueError as exc:
        raise ParseFailedError(f"Model response was not valid JSON: {exc}") from exc


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _apply_defaults(item: dict[str, Any]) -> dict[str, Any]:
    """Fill omitted fields and recompute wind from its vector components."""
    normalized = {key: value for key, value in item.items() if value is not None}
    for key in _NUMERIC_FIELDS:
        if key in normalized:
            number = _as_number(normalized[key])
            if number is None:
                del normalized[key]
            else:
                normalized[key] = number
    for key, default in _FALSY_DEFAULTS.items():
        if not normalized.get(key):
            normalized[key] = default
    for key, default in _NULL_DEFAULTS.items():
        normalized.setdefault(key, default)

    u = _as_number(normalized.get("uWind")) or 0.0
    v = _as_number(normalized.get("vWind")) or 0.0
    speed, direction = wind_metrics(u, v)
    normalized["uWind"] = u
    normalized["vWind"] = v
    normalized["windSpeed"] = speed
    normalized["windDirection"] = direction
    return normalized


def _periods(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [_apply_defaults(item) for item in raw if isinstance(item, dict)]


def normalize_snapshot(
    raw: Any,
    sources: list[GroundingSource] | None = None,
) -> WeatherSnapshot:
    """Build a WeatherSnapshot from a decoded model payload.

    The same transform runs for the top-level conditions and every forecast
    and hourly entry, so a payload that was already normalized comes back
    unchanged.
    """
    if not isinstance(raw, dict):
        raise ParseFailedError(
            f"Weather payload must be a JSON object, got {type(raw).__name__}."
        )
    city = raw.get("city")
    if not isinstance(city, str) or not city.strip():
        raise ParseFailedError("Weather payload missing 'city'.")

    payload = _apply_defaults(raw)
    payload["city"] = city.strip()
    if not isinstance(payload.get("alerts"), list):
        payload["alerts"] = []
    payload["forecast"] = _periods(raw.get("forecast"))
    payload["hourly"] = _periods(raw.get("hourly"))
    if sources is not None:
        payload["sources"] = [source.to_wire() for source in sources]
    elif not isinstance(payload.get("sources"), list):
        payload["sources"] = []

    try:
        return WeatherSnapshot.model_validate(payload)
    except ValidationError as exc:
        raise ParseFailedError(f"Weather payload failed validation: {exc}") from exc


def normalize_forecast_day(item: dict[str, Any]) -> ForecastDay:
    return ForecastDay.model_validate(_apply_defaults(item))


def normalize_hourly(item: dict[str, Any]) -> HourlyForecast:
    return HourlyForecast.model_validate(_apply_defaults(item))
