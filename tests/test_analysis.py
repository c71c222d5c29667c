"""Analysis series: synthesized fetches, snapshot-derived series and summary tiles."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import pytest

from skycast_weather.analysis import (
    AnalysisService,
    build_series_prompt,
    forecast_series,
    live_series,
    summarize,
)
from skycast_weather.exceptions import ModelServiceError, RateLimitedError
from skycast_weather.genai import GenerativeModelClient, ModelRequest, ModelResponse
from skycast_weather.models import AnalysisPoint, ForecastDay, HourlyForecast, WeatherSnapshot

_LOGGER = logging.getLogger("test.analysis")


class FakeModelClient(GenerativeModelClient):
    def __init__(self, outcomes: list[Any]) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[ModelRequest] = []

    async def generate(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        return None


def _service(client: FakeModelClient) -> tuple[AnalysisService, list[float]]:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return (
        AnalysisService(client, logger=_LOGGER, model="test-model", sleep=fake_sleep),
        sleeps,
    )


def _series_text(*values: float) -> str:
    return json.dumps([{"label": f"P{index}", "value": value} for index, value in enumerate(values)])


def test_historical_series_is_parsed() -> None:
    client = FakeModelClient([ModelResponse(text=_series_text(20.5, 22.0, 19.0))])
    service, _ = _service(client)

    points = asyncio.run(
        service.fetch_historical("Paris", "temp", "2024-01-01", "2024-03-01", "Monthly")
    )

    assert [(point.label, point.value) for point in points] == [
        ("P0", 20.5),
        ("P1", 22.0),
        ("P2", 19.0),
    ]
    request = client.requests[0]
    assert request.response_mime_type == "application/json"
    assert request.use_search_grounding is False
    assert "historical weather data for Paris" in request.contents
    assert "2024-01-01 to 2024-03-01" in request.contents
    assert "Monthly" in request.contents


def test_predicted_series_uses_prediction_prompt() -> None:
    client = FakeModelClient([ModelResponse(text="```json\n" + _series_text(1) + "\n```")])
    service, _ = _service(client)
    points = asyncio.run(
        service.fetch_predicted("Oslo", "windSpeed", "2025-01-01", "2025-01-07", "Daily")
    )
    assert len(points) == 1
    assert "predicted weather trends for Oslo" in client.requests[0].contents


def test_empty_text_means_empty_series() -> None:
    client = FakeModelClient([ModelResponse(text="")])
    service, _ = _service(client)
    assert asyncio.run(
        service.fetch_historical("Paris", "aqi", "2024-01-01", "2024-01-02", "Daily")
    ) == []


@pytest.mark.parametrize(
    "text",
    ["not json at all", '{"label": "x", "value": 1}', '[{"label": "x"}]', '[{"value": "high"}]'],
)
def test_malformed_series_collapses_to_empty(text: str) -> None:
    client = FakeModelClient([ModelResponse(text=text)])
    service, _ = _service(client)
    assert asyncio.run(
        service.fetch_historical("Paris", "temp", "2024-01-01", "2024-01-31", "Weekly")
    ) == []


def test_rate_limited_series_retries_twice_then_returns_empty() -> None:
    client = FakeModelClient([RateLimitedError("quota")])
    service, sleeps = _service(client)
    points = asyncio.run(
        service.fetch_predicted("Paris", "temp", "2025-01-01", "2025-02-01", "Weekly")
    )
    assert points == []
    assert len(client.requests) == 3
    assert sleeps == [3.0, 6.0]


def test_fatal_model_error_returns_empty_without_retry() -> None:
    client = FakeModelClient([ModelServiceError("denied", status_code=403)])
    service, sleeps = _service(client)
    assert asyncio.run(
        service.fetch_historical("Paris", "temp", "2024-01-01", "2024-01-31", "Weekly")
    ) == []
    assert len(client.requests) == 1
    assert sleeps == []


def test_unexpected_client_error_returns_empty() -> None:
    client = FakeModelClient([RuntimeError("transport exploded")])
    service, sleeps = _service(client)
    assert asyncio.run(
        service.fetch_historical("Paris", "temp", "2024-01-01", "2024-01-07", "Daily")
    ) == []
    assert len(client.requests) == 1
    assert sleeps == []


@pytest.mark.parametrize(
    ("city", "parameter", "start", "end", "resolution"),
    [
        ("  ", "temp", "2024-01-01", "2024-01-31", "Daily"),
        ("Paris", "dewPoint", "2024-01-01", "2024-01-31", "Daily"),
        ("Paris", "temp", "2024-01-01", "2024-01-31", "Hourly"),
        ("Paris", "temp", "01/01/2024", "2024-01-31", "Daily"),
        ("Paris", "temp", "2024-02-01", "2024-01-01", "Daily"),
    ],
)
def test_invalid_request_skips_model_call(
    city: str, parameter: str, start: str, end: str, resolution: str
) -> None:
    client = FakeModelClient([ModelResponse(text=_series_text(1.0))])
    service, _ = _service(client)
    assert asyncio.run(service.fetch_historical(city, parameter, start, end, resolution)) == []
    assert client.requests == []


def test_prompt_names_parameter_label_and_unit() -> None:
    prompt = build_series_prompt("historical", "Bellary", "pressure", "2024-01-01", "2024-12-31", "Monthly")
    assert "pressure (Pressure, hPa)" in prompt
    assert "{label: string, value: number}" in prompt


def _snapshot() -> WeatherSnapshot:
    return WeatherSnapshot(
        city="Paris",
        hourly=[
            HourlyForecast(time="10:00", temp=14.0, feels_like=12.5, cloud_cover=40),
            HourlyForecast(time="11:00", temp=15.5, feels_like=14.0),
        ],
        forecast=[
            ForecastDay(day="Mon", temp=16.0, wind_speed=12.0, wind_direction=90),
            ForecastDay(day="Tue", temp=18.0, wind_speed=8.5, wind_direction=270),
        ],
    )


def test_live_series_reads_hourly_values() -> None:
    points = live_series(_snapshot(), "feelsLike")
    assert [(point.label, point.value) for point in points] == [("10:00", 12.5), ("11:00", 14.0)]
    assert [point.value for point in live_series(_snapshot(), "cloudCover")] == [40.0, 0.0]


def test_forecast_series_reads_daily_values() -> None:
    points = forecast_series(_snapshot(), "windDirection")
    assert [(point.label, point.value) for point in points] == [("Mon", 90.0), ("Tue", 270.0)]


def test_summary_tiles() -> None:
    points = [AnalysisPoint(label=str(index), value=value) for index, value in enumerate([4.0, 8.0, 6.0])]
    summary = summarize(points)
    assert (summary.peak, summary.mean, summary.low, summary.count) == (8.0, 6.0, 0.0, 3)


def test_summary_of_empty_and_negative_series() -> None:
    empty = summarize([])
    assert (empty.peak, empty.mean, empty.low, empty.count) == (0.0, 0.0, 0.0, 0)
    negative = summarize([AnalysisPoint(label="a", value=-4.0), AnalysisPoint(label="b", value=-2.0)])
    assert (negative.peak, negative.mean, negative.low) == (0.0, -3.0, -4.0)
