"""SkyCast weather core: cached, deduplicated, retrying model-backed weather data."""

from .analysis import AnalysisService, forecast_series, live_series, summarize
from .assistant import WeatherAssistant
from .cache import WeatherCache
from .coordinator import RequestCoordinator
from .exceptions import (
    FetchFailedError,
    InvalidInputError,
    ModelServiceError,
    ParseFailedError,
    RateLimitedError,
    ServiceUnavailableError,
    SkyCastError,
)
from .genai import GeminiClient, GenerativeModelClient, ModelRequest, ModelResponse
from .models import (
    AnalysisPoint,
    CacheEntry,
    ForecastDay,
    GroundingSource,
    HourlyForecast,
    WeatherSnapshot,
)
from .resilience import BOUNDED_POLICY, EXTENDED_POLICY, RetryPolicy, call_with_retry
from .storage import JsonFileStore, MemoryStore
from .weather_service import WeatherService

__all__ = [
    "BOUNDED_POLICY",
    "EXTENDED_POLICY",
    "AnalysisPoint",
    "AnalysisService",
    "CacheEntry",
    "FetchFailedError",
    "ForecastDay",
    "GeminiClient",
    "GenerativeModelClient",
    "GroundingSource",
    "HourlyForecast",
    "InvalidInputError",
    "JsonFileStore",
    "MemoryStore",
    "ModelRequest",
    "ModelResponse",
    "ModelServiceError",
    "ParseFailedError",
    "RateLimitedError",
    "RequestCoordinator",
    "RetryPolicy",
    "ServiceUnavailableError",
    "SkyCastError",
    "WeatherAssistant",
    "WeatherCache",
    "WeatherService",
    "WeatherSnapshot",
    "call_with_retry",
    "forecast_series",
    "live_series",
    "summarize",
]
