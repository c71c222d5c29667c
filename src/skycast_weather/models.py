"""Typed models for normalized weather snapshots, cache entries and analysis series."""

from __future__ import annotations

from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AnalysisParameter = Literal[
    "temp",
    "feelsLike",
    "humidity",
    "windSpeed",
    "windDirection",
    "pressure",
    "precipAmount",
    "cloudCover",
    "visibility",
    "aqi",
    "snowAmount",
    "uWind",
    "vWind",
]
Resolution = Literal["Daily", "Weekly", "Monthly"]
ChatRole = Literal["user", "assistant"]
NotificationKind = Literal["info", "success", "error"]


class WireModel(BaseModel):
    """Base for models that travel as camelCase JSON (model payloads and cache entries)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class GroundingSource(WireModel):
    """Citation attached to a model answer."""

    uri: str
    title: str = ""


class _PeriodConditions(WireModel):
    temp: float = 0.0
    feels_like: float = 0.0
    condition: str = ""
    humidity: float = 0.0
    pressure: float = 0.0
    uv_index: float = 0.0
    visibility: float = 0.0
    precip: float = Field(default=0.0, description="Precipitation probability (percent)")
    precip_amount: float = Field(default=0.0, description="Rainfall in mm")
    snow_amount: float = Field(default=0.0, description="Snowfall in mm")
    u_wind: float = Field(default=0.0, description="Zonal wind component")
    v_wind: float = Field(default=0.0, description="Meridional wind component")
    wind_speed: float = 0.0
    wind_direction: int = 0
    cloud_cover: float = Field(default=0.0, description="Cloud cover percentage")
    aqi: float = 0.0
    thunderstorm: str = "None"


class ForecastDay(_PeriodConditions):
    """One day of the 7-day forecast."""

    day: str = ""
    date: str | None = None
    high: float = 0.0
    low: float = 0.0
    description: str | None = None


class HourlyForecast(_PeriodConditions):
    """One hour of the 24-hour series."""

    time: str = ""


class WeatherSnapshot(WireModel):
    """Current conditions plus forecast bundle for one city at one fetch time."""

    city: str
    temp: float = 0.0
    feels_like: float = 0.0
    condition: str = ""
    description: str = ""
    humidity: float = 0.0
    pressure: float = 0.0
    visibility: float = 0.0
    uv_index: float = 0.0
    high: float = 0.0
    low: float = 0.0
    timezone: str = ""
    u_wind: float = 0.0
    v_wind: float = 0.0
    wind_speed: float = 0.0
    wind_direction: int = 0
    precip_amount: float = 0.0
    snow_amount: float = 0.0
    cloud_cover: float = 0.0
    aqi: float = 0.0
    alerts: list[str] = Field(default_factory=list)
    thunderstorm: str = "None"
    forecast: list[ForecastDay] = Field(default_factory=list)
    hourly: list[HourlyForecast] = Field(default_factory=list)
    sources: list[GroundingSource] = Field(default_factory=list)


class CacheEntry(WireModel):
    """Snapshot paired with its capture time in epoch milliseconds."""

    data: WeatherSnapshot
    timestamp: int


class AnalysisPoint(WireModel):
    """One labelled value of a synthesized time series."""

    label: str
    value: float


class ParameterInfo(NamedTuple):
    label: str
    unit: str


PARAMETER_CATALOG: dict[str, ParameterInfo] = {
    "temp": ParameterInfo("Temperature", "°C"),
    "feelsLike": ParameterInfo("Feels Like", "°C"),
    "humidity": ParameterInfo("Humidity", "%"),
    "windSpeed": ParameterInfo("Wind Speed", "km/h"),
    "windDirection": ParameterInfo("Wind Direction", "°"),
    "pressure": ParameterInfo("Pressure", "hPa"),
    "precipAmount": ParameterInfo("Precipitation", "mm"),
    "cloudCover": ParameterInfo("Cloud Cover", "%"),
    "visibility": ParameterInfo("Visibility", "km"),
    "aqi": ParameterInfo("Air Quality", "Idx"),
    "snowAmount": ParameterInfo("Snowfall", "mm"),
    "uWind": ParameterInfo("Zonal Wind", "m/s"),
    "vWind": ParameterInfo("Meridional Wind", "m/s"),
}
RESOLUTIONS: tuple[str, ...] = ("Daily", "Weekly", "Monthly")


class SeriesSummary(BaseModel):
    """Peak/mean/low tiles shown next to an analysis chart."""

    peak: float
    mean: float
    low: float
    count: int


class ChatMessage(WireModel):
    role: ChatRole
    content: str
    timestamp: int
    sources: list[GroundingSource] | None = None


class ChatReply(BaseModel):
    """Assistant answer plus the city side-channel taken from its tool call."""

    text: str
    sources: list[GroundingSource] = Field(default_factory=list)
    city_to_update: str | None = None


class Notification(BaseModel):
    message: str
    kind: NotificationKind
