"""Persistent cache namespacing, entry shape and store durability."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from skycast_weather import storage
from skycast_weather.cache import FRESH_TTL_MS, WeatherCache, is_fresh, normalize_city
from skycast_weather.exceptions import CacheStoreError
from skycast_weather.models import CacheEntry, WeatherSnapshot
from skycast_weather.storage import JsonFileStore, MemoryStore

_LOGGER = logging.getLogger("test.cache")


def _snapshot(city: str = "Paris", temp: float = 18.0) -> WeatherSnapshot:
    return WeatherSnapshot(city=city, temp=temp, u_wind=0.0, v_wind=-5.0, wind_speed=5.0)


class _BrokenStore:
    def get(self, key: str) -> str | None:
        raise CacheStoreError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise CacheStoreError("disk unavailable")


def test_keys_are_normalized_and_namespaced() -> None:
    cache = WeatherCache(MemoryStore(), _LOGGER)
    assert normalize_city("  PaRis ") == "paris"
    assert cache.key_for("  PaRis ") == "skycast_v3_paris"
    assert WeatherCache(MemoryStore(), _LOGGER, prefix="other_").key_for("Oslo") == "other_oslo"


def test_written_entry_has_data_and_timestamp_shape() -> None:
    store = MemoryStore()
    cache = WeatherCache(store, _LOGGER)
    cache.write("Paris", _snapshot(), timestamp_ms=1_700_000_000_000)

    stored = json.loads(store.get("skycast_v3_paris") or "")
    assert set(stored) == {"data", "timestamp"}
    assert stored["timestamp"] == 1_700_000_000_000
    assert stored["data"]["city"] == "Paris"
    assert stored["data"]["vWind"] == -5.0
    assert "feelsLike" in stored["data"]

    entry = cache.read(" paris ")
    assert entry is not None
    assert entry.data == _snapshot()


def test_write_overwrites_previous_entry() -> None:
    store = MemoryStore()
    cache = WeatherCache(store, _LOGGER)
    cache.write("Paris", _snapshot(temp=10), timestamp_ms=1)
    cache.write("PARIS", _snapshot(temp=20), timestamp_ms=2)
    entry = cache.read("paris")
    assert entry is not None
    assert (entry.data.temp, entry.timestamp) == (20, 2)
    assert store.keys() == ["skycast_v3_paris"]


def test_unrelated_keys_are_left_alone() -> None:
    store = MemoryStore({"skycast_last_city": "Paris", "theme": "dark"})
    cache = WeatherCache(store, _LOGGER)
    cache.write("Paris", _snapshot(), timestamp_ms=5)
    assert store.get("theme") == "dark"
    assert store.get("skycast_last_city") == "Paris"


def test_absent_and_undecodable_entries_read_as_none() -> None:
    store = MemoryStore({"skycast_v3_oslo": "{not json", "skycast_v3_rome": '{"data": {}}'})
    cache = WeatherCache(store, _LOGGER)
    assert cache.read("Berlin") is None
    assert cache.read("Oslo") is None
    assert cache.read("Rome") is None


def test_store_read_failure_reads_as_absent() -> None:
    assert WeatherCache(_BrokenStore(), _LOGGER).read("Paris") is None


def test_store_write_failure_propagates() -> None:
    with pytest.raises(CacheStoreError):
        WeatherCache(_BrokenStore(), _LOGGER).write("Paris", _snapshot(), timestamp_ms=1)


def test_freshness_window_is_strict() -> None:
    entry = CacheEntry(data=_snapshot(), timestamp=1_000_000)
    assert FRESH_TTL_MS == 30 * 60 * 1000
    assert is_fresh(entry, now_ms=1_000_000 + FRESH_TTL_MS - 1)
    assert not is_fresh(entry, now_ms=1_000_000 + FRESH_TTL_MS)
    assert not is_fresh(entry, now_ms=1_000_000 + 31 * 60 * 1000)


def test_json_file_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "cache.json"
    first = JsonFileStore(path)
    assert first.get("skycast_v3_paris") is None
    WeatherCache(first, _LOGGER).write("Paris", _snapshot(), timestamp_ms=42)

    second = JsonFileStore(path)
    entry = WeatherCache(second, _LOGGER).read("paris")
    assert entry is not None
    assert entry.timestamp == 42
    assert second.keys() == ["skycast_v3_paris"]
    assert not list(path.parent.glob("*.tmp"))


def test_json_file_store_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "cache.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(CacheStoreError, match="JSON object"):
        JsonFileStore(path).get("anything")

    path.write_text("{oops", encoding="utf-8")
    with pytest.raises(CacheStoreError, match="Failed reading"):
        JsonFileStore(path).get("anything")


def test_json_file_store_failed_write_keeps_memory_and_disk_in_step(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "cache.json"
    store = JsonFileStore(path)
    store.set("skycast_v3_paris", "old")

    def refuse_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(storage.os, "replace", refuse_replace)
    with pytest.raises(CacheStoreError, match="Failed writing"):
        store.set("skycast_v3_paris", "new")
    with pytest.raises(CacheStoreError):
        store.set("skycast_v3_oslo", "added")
    monkeypatch.undo()

    assert store.get("skycast_v3_paris") == "old"
    assert store.keys() == ["skycast_v3_paris"]
    assert JsonFileStore(path).get("skycast_v3_paris") == "old"
    assert sorted(entry.name for entry in tmp_path.iterdir()) == ["cache.json"]
