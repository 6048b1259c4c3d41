from datetime import date, datetime, timezone

import pytest

from forecastguard.domain.models.common import (
    ForecastParams,
    LocationKey,
    validate_forecast_params,
)
from forecastguard.domain.models.errors import CacheCorruptError, MergeError
from forecastguard.domain.models.weather import (
    LIVE_FIELDS,
    CacheRecord,
    LiveConditions,
    StableForecast,
    merge_fields,
    merge_forecast,
)

STABLE = StableForecast(
    temp_high=80.0, temp_low=60.0, sunrise=1, sunset=2,
    city_name="New York", country="US", timezone_offset=0,
)
LIVE = LiveConditions(current_temp=75.0, current_conditions="clear sky")


def test_merge_fields_is_exact_union():
    assert merge_fields({"high": 80, "low": 60}, {"current": 75}) == {"high": 80, "low": 60, "current": 75}


def test_merge_fields_never_overwrites_stable_values():
    merged = merge_fields({"high": 80, "low": 60}, {"current": 75, "high": 99})
    assert merged["high"] == 80


def test_merge_fields_rejects_empty_live_data():
    with pytest.raises(MergeError):
        merge_fields({"high": 80}, {})


def test_merge_fields_rejects_partial_live_subset():
    partial = {"current_temp": 75.0, "current_conditions": "clear sky", "rain_chance": 0.1}
    with pytest.raises(MergeError, match="wind_conditions, weather_alerts"):
        merge_fields({"temp_high": 80.0}, partial, required=LIVE_FIELDS)


def test_merge_forecast_keeps_both_subsets():
    now = datetime(2025, 6, 15, 12, tzinfo=timezone.utc)
    result = merge_forecast(STABLE, LIVE, "New York, US", "imperial", now, from_cache=True)

    assert result.stable == STABLE
    assert result.live == LIVE
    assert result.from_cache is True
    data = result.to_dict()
    assert data["temp_high"] == 80.0
    assert data["current_temp"] == 75.0
    assert data["last_updated"] == now.isoformat()


def test_merge_forecast_rejects_wrong_types():
    now = datetime(2025, 6, 15, 12, tzinfo=timezone.utc)
    with pytest.raises(MergeError):
        merge_forecast({"temp_high": 80}, LIVE, "x", "imperial", now, from_cache=False)
    with pytest.raises(MergeError):
        merge_forecast(STABLE, None, "x", "imperial", now, from_cache=False)


def test_location_key_matching():
    key = LocationKey(40.7128, -74.006, "imperial")
    assert key.matches(LocationKey(40.7128, -74.006, "IMPERIAL"))
    assert key.matches(LocationKey(40.71280001, -74.006, "imperial"))
    assert not key.matches(LocationKey(40.72, -74.006, "imperial"))
    assert not key.matches(LocationKey(40.7128, -74.006, "metric"))


def test_record_validity():
    record = CacheRecord(
        created_on_date=date(2025, 6, 15), created_at=0, location="New York, US",
        latitude=40.7128, longitude=-74.006, units="imperial", stable=STABLE,
    )
    key = LocationKey(40.7128, -74.006, "imperial")

    assert record.is_valid_for(key, date(2025, 6, 15))
    assert not record.is_valid_for(key, date(2025, 6, 16))
    assert not record.is_valid_for(LocationKey(51.5, -0.12, "imperial"), date(2025, 6, 15))


def test_record_from_dict_accepts_yaml_dates():
    document = CacheRecord(
        created_on_date=date(2025, 6, 15), created_at=0, location="x",
        latitude=1.0, longitude=2.0, units="metric", stable=STABLE,
    ).to_dict()
    document["created_on_date"] = date(2025, 6, 15)

    assert CacheRecord.from_dict(document).created_on_date == date(2025, 6, 15)


def test_record_from_dict_rejects_bad_values():
    with pytest.raises(CacheCorruptError):
        CacheRecord.from_dict({"schema_version": 1, "daily_forecast": "nope"})
    with pytest.raises(CacheCorruptError):
        CacheRecord.from_dict(None)


def test_validate_forecast_params():
    validate_forecast_params(ForecastParams(40.7, -74.0, "metric", 40))

    with pytest.raises(ValueError) as exc_info:
        validate_forecast_params(ForecastParams(91.0, -181.0, "kelvin", 41))
    message = str(exc_info.value)
    assert "latitude" in message
    assert "longitude" in message
    assert "units" in message
    assert "count" in message


def test_forecast_params_location_key_lowercases_units():
    assert ForecastParams(1.0, 2.0, "Metric").location_key == LocationKey(1.0, 2.0, "metric")
