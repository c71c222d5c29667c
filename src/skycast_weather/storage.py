"""Synchronous string key-value stores standing in for durable browser storage."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from .exceptions import CacheStoreError


class KeyValueStore(Protocol):
    """get/set over string values; no expiry, no eviction."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store, mainly for tests and one-shot runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def keys(self) -> list[str]:
        return sorted(self._values)


class JsonFileStore:
    """All keys kept in one JSON object on disk, rewritten atomically on each set."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._values: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._values is not None:
            return self._values
        if not self.path.exists():
            self._values = {}
            return self._values
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                loaded = json.load(fh)
        except (OSError, ValueError) as exc:
            raise CacheStoreError(f"Failed reading store file {self.path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise CacheStoreError(
                f"Store file {self.path} must hold a JSON object, "
                f"got {type(loaded).__name__}."
            )
        self._values = {str(k): v for k, v in loaded.items() if isinstance(v, str)}
        return self._values

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        # Memory only changes once the new file is in place.
        values = {**self._load(), key: value}
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(values, fh, ensure_ascii=False, indent=2)
                fh.write("\n")
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheStoreError(f"Failed writing store file {self.path}: {exc}") from exc
        self._values = values

    def keys(self) -> list[str]:
        return sorted(self._load())
