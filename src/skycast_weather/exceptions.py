"""Application exception classes."""

from __future__ import annotations


class SkyCastError(Exception):
    """Base class for all weather-core failures."""


class ConfigError(SkyCastError):
    """Raised when configuration is invalid or incomplete."""


class InvalidInputError(SkyCastError):
    """Raised before any I/O when a caller passes an unusable argument."""


class CacheStoreError(SkyCastError):
    """Raised when the persistent key-value store cannot be read or written."""


class ModelServiceError(SkyCastError):
    """Raised for generative-model request failures with status/retry metadata."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class RateLimitedError(ModelServiceError):
    """HTTP 429 from the model service."""

    def __init__(self, message: str, *, status_code: int | None = 429) -> None:
        super().__init__(message, status_code=status_code, retryable=True)


class ServiceUnavailableError(ModelServiceError):
    """HTTP 500/503 from the model service."""

    def __init__(self, message: str, *, status_code: int | None = 503) -> None:
        super().__init__(message, status_code=status_code, retryable=True)


class FetchFailedError(SkyCastError):
    """Raised when a weather fetch fails for good (non-transient or retries exhausted)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseFailedError(SkyCastError):
    """Raised when a model response body does not have the expected structure."""
