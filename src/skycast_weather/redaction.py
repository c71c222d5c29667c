"""Keep Gemini API keys out of log lines and surfaced error text."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# Google API keys: "AIza" followed by 35 URL-safe characters.
_GOOGLE_API_KEY_RE = re.compile(r"AIza[0-9A-Za-z_\-]{35}")
_URL_KEY_PARAM_RE = re.compile(r"([?&]key=)[^&\s\"']+", re.IGNORECASE)
_ASSIGNED_SECRET_RE = re.compile(
    r"(?i)\b(x-goog-api-key|api[_-]?key|authorization|token|secret)(\s*[:=]\s*)([^\s,;&\"']+)"
)
_SENSITIVE_FIELD_RE = re.compile(r"(api[_-]?key|authorization|token|secret)", re.IGNORECASE)


def sanitize_text(text: str) -> str:
    """Redact keys passed as URL params, header/assignment values or bare tokens."""
    sanitized = _URL_KEY_PARAM_RE.sub(lambda m: m.group(1) + REDACTED, text)
    sanitized = _ASSIGNED_SECRET_RE.sub(
        lambda m: f"{m.group(1)}{m.group(2)}{REDACTED}", sanitized
    )
    return _GOOGLE_API_KEY_RE.sub(REDACTED, sanitized)


def sanitize_for_logging(value: Any) -> Any:
    """Recursively redact secrets in dicts, lists, tuples and strings."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {
            key: REDACTED if _SENSITIVE_FIELD_RE.search(str(key)) else sanitize_for_logging(child)
            for key, child in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_for_logging(item) for item in value)
    return value
