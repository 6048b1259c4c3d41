"""Domain models for the daily forecast and its persisted cache record.

Forecast data splits into two subsets:
- stable fields, which do not change within a calendar day (high/low,
  sunrise/sunset, resolved place) and may be reused from the cache;
- live fields, which must be fetched fresh on every call (current
  temperature and conditions).
"""

from dataclasses import dataclass, field, fields, asdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .common import LocationKey
from .errors import CacheCorruptError, MergeError

SCHEMA_VERSION = 1
SUPPORTED_SCHEMA_VERSIONS = frozenset({SCHEMA_VERSION})


@dataclass
class StableForecast:
    """Forecast data that remains constant throughout the day."""
    temp_high: float
    temp_low: float
    sunrise: int         # Unix timestamp
    sunset: int          # Unix timestamp
    city_name: str
    country: str
    timezone_offset: int # Seconds east of UTC


@dataclass
class LiveConditions:
    """Data that must be fetched fresh on every call."""
    current_temp: float
    current_conditions: str
    rain_chance: float = 0.0 # 0..1
    wind_conditions: str = "Calm"
    weather_alerts: List[str] = field(default_factory=list)


STABLE_FIELDS = tuple(f.name for f in fields(StableForecast))
LIVE_FIELDS = tuple(f.name for f in fields(LiveConditions))


@dataclass
class FullForecast:
    """Result of a full upstream fetch: both subsets plus the resolved place."""
    location: str
    stable: StableForecast
    live: LiveConditions


@dataclass
class TodayWeather:
    """Today's weather as returned to callers, stable and live fields merged."""
    location: str
    units: str
    stable: StableForecast
    live: LiveConditions
    last_updated: datetime
    from_cache: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = merge_fields(asdict(self.stable), asdict(self.live), required=LIVE_FIELDS)
        data.update({
            "location": self.location,
            "units": self.units,
            "last_updated": self.last_updated.isoformat(),
            "from_cache": self.from_cache,
        })
        return data


def merge_fields(
    stable: Mapping[str, Any],
    live: Mapping[str, Any],
    required: Iterable[str] = (),
) -> Dict[str, Any]:
    """Field-by-field replacement of the live subset over the stable subset.

    Only keys absent from `stable` are taken from `live`, so stable fields are
    never overwritten by live data.

    Raises:
        MergeError: If `live` lacks a `required` field or contributes no fields
            of its own.
    """
    missing = [name for name in required if name not in live]
    if missing:
        raise MergeError(f"live data is missing fields: {', '.join(missing)}")
    merged = dict(stable)
    live_keys = [key for key in live if key not in stable]
    if not live_keys:
        raise MergeError("live data contributes no fields")
    for key in live_keys:
        merged[key] = live[key]
    return merged


def merge_forecast(
    stable: StableForecast,
    live: LiveConditions,
    location: str,
    units: str,
    now: datetime,
    from_cache: bool,
) -> TodayWeather:
    """Combines cached or freshly fetched stable fields with fresh live fields."""
    if not isinstance(stable, StableForecast):
        raise MergeError(f"expected StableForecast, got {type(stable).__name__}")
    if not isinstance(live, LiveConditions):
        raise MergeError(f"expected LiveConditions, got {type(live).__name__}")
    merged = merge_fields(asdict(stable), asdict(live), required=LIVE_FIELDS)
    return TodayWeather(
        location=location,
        units=units,
        stable=StableForecast(**{name: merged[name] for name in STABLE_FIELDS}),
        live=LiveConditions(**{name: merged[name] for name in LIVE_FIELDS}),
        last_updated=now,
        from_cache=from_cache,
    )


@dataclass
class CacheRecord:
    """The persisted daily cache record (one record per file).

    A record is reusable only when it was created on the caller's local
    calendar date, for the same location key, with a recognised schema.
    """
    created_on_date: date
    created_at: int # Unix timestamp, informational only
    location: str
    latitude: float
    longitude: float
    units: str
    stable: StableForecast
    schema_version: int = SCHEMA_VERSION

    @property
    def location_key(self) -> LocationKey:
        return LocationKey(self.latitude, self.longitude, self.units)

    def is_valid_for(self, key: LocationKey, today: date) -> bool:
        return (
            self.schema_version in SUPPORTED_SCHEMA_VERSIONS
            and self.created_on_date == today
            and self.location_key.matches(key)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created_on_date": self.created_on_date.isoformat(),
            "created_at": int(self.created_at),
            "location": self.location,
            "latitude": float(self.latitude),
            "longitude": float(self.longitude),
            "units": self.units,
            "schema_version": self.schema_version,
            "daily_forecast": asdict(self.stable),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheRecord":
        """Builds a record from a decoded document.

        Raises:
            CacheCorruptError: If the document is not a mapping, a field is missing
                or mistyped, or the schema version is not recognised.
        """
        if not isinstance(data, Mapping):
            raise CacheCorruptError(f"cache document is not a mapping: {type(data).__name__}")

        version = data.get("schema_version")
        if version not in SUPPORTED_SCHEMA_VERSIONS:
            raise CacheCorruptError(f"unsupported cache schema version: {version!r}")

        try:
            block = data["daily_forecast"]
            if not isinstance(block, Mapping):
                raise CacheCorruptError("daily_forecast block is not a mapping")
            stable = StableForecast(
                temp_high=float(block["temp_high"]),
                temp_low=float(block["temp_low"]),
                sunrise=int(block["sunrise"]),
                sunset=int(block["sunset"]),
                city_name=str(block["city_name"]),
                country=str(block["country"]),
                timezone_offset=int(block["timezone_offset"]),
            )
            return cls(
                created_on_date=_parse_date(data["created_on_date"]),
                created_at=int(data.get("created_at", 0)),
                location=str(data["location"]),
                latitude=float(data["latitude"]),
                longitude=float(data["longitude"]),
                units=str(data["units"]),
                stable=stable,
                schema_version=version,
            )
        except KeyError as e:
            raise CacheCorruptError(f"cache record is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise CacheCorruptError(f"cache record has an invalid field: {e}") from e


def _parse_date(value: Any) -> date:
    # YAML loaders turn an unquoted YYYY-MM-DD into a date already
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
