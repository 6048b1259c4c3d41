import os
from datetime import date
from pathlib import Path

import pytest
import yaml

from forecastguard.domain.models.errors import (
    CacheCorruptError,
    CacheIOError,
    CacheNotFoundError,
)
from forecastguard.domain.models.weather import CacheRecord, StableForecast
from forecastguard.infrastructure.cache.cache_store import FileCacheStore


def _record(created_on=date(2025, 6, 15), high=80.0) -> CacheRecord:
    return CacheRecord(
        created_on_date=created_on,
        created_at=1749988800,
        location="New York, US",
        latitude=40.7128,
        longitude=-74.006,
        units="imperial",
        stable=StableForecast(
            temp_high=high,
            temp_low=60.0,
            sunrise=1749965000,
            sunset=1750018000,
            city_name="New York",
            country="US",
            timezone_offset=-14400,
        ),
    )


@pytest.fixture
def store(tmp_path: Path) -> FileCacheStore:
    return FileCacheStore(tmp_path / "cache" / "weather.yaml")


def test_round_trip(store: FileCacheStore):
    record = _record()
    store.write(record)

    assert store.exists()
    assert store.read() == record
    assert not store.temp_path.exists()


def test_document_layout(store: FileCacheStore):
    store.write(_record())
    document = yaml.safe_load(store.file_path.read_text(encoding="utf-8"))

    assert document["schema_version"] == 1
    assert document["daily_forecast"]["temp_high"] == 80.0
    assert set(document) == {
        "created_on_date", "created_at", "location", "latitude",
        "longitude", "units", "schema_version", "daily_forecast",
    }


def test_read_missing_file(store: FileCacheStore):
    with pytest.raises(CacheNotFoundError):
        store.read()


def test_read_unparseable_file(store: FileCacheStore):
    store.file_path.parent.mkdir(parents=True)
    store.file_path.write_text("created_on_date: [unclosed\n", encoding="utf-8")
    with pytest.raises(CacheCorruptError):
        store.read()


def test_read_non_mapping_document(store: FileCacheStore):
    store.file_path.parent.mkdir(parents=True)
    store.file_path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(CacheCorruptError):
        store.read()


def test_read_unsupported_schema(store: FileCacheStore):
    document = _record().to_dict()
    document["schema_version"] = 99
    store.file_path.parent.mkdir(parents=True)
    store.file_path.write_text(yaml.safe_dump(document), encoding="utf-8")
    with pytest.raises(CacheCorruptError, match="schema"):
        store.read()


def test_read_missing_field(store: FileCacheStore):
    document = _record().to_dict()
    del document["daily_forecast"]["temp_low"]
    store.file_path.parent.mkdir(parents=True)
    store.file_path.write_text(yaml.safe_dump(document), encoding="utf-8")
    with pytest.raises(CacheCorruptError, match="temp_low"):
        store.read()


def test_crash_before_rename_keeps_previous_record(store: FileCacheStore, mocker):
    previous = _record(high=80.0)
    store.write(previous)

    mocker.patch("forecastguard.infrastructure.cache.cache_store.os.replace", side_effect=OSError("disk gone"))
    with pytest.raises(CacheIOError):
        store.write(_record(high=99.0))

    assert store.read() == previous
    assert not store.temp_path.exists()


def test_crash_before_rename_without_previous_record(store: FileCacheStore, mocker):
    mocker.patch("forecastguard.infrastructure.cache.cache_store.os.replace", side_effect=OSError("disk gone"))
    with pytest.raises(CacheIOError):
        store.write(_record())

    with pytest.raises(CacheNotFoundError):
        store.read()


def test_stale_temp_file_is_ignored_by_read(store: FileCacheStore):
    store.write(_record())
    store.temp_path.write_text("created_on_da", encoding="utf-8")

    assert store.read() == _record()


def test_delete(store: FileCacheStore):
    store.write(_record())
    store.delete()

    assert not store.exists()
    # Deleting again is a no-op
    store.delete()


def test_write_failure_surfaces_as_cache_io_error(tmp_path: Path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = FileCacheStore(blocker / "weather.yaml")

    with pytest.raises(CacheIOError):
        store.write(_record())
    assert os.path.isfile(blocker)
