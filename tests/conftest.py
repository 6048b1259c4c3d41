import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from forecastguard.domain.interfaces.clock import Clock
from forecastguard.infrastructure.config.settings import clear_test_config, set_config_for_testing

# 2025-06-15 12:00 UTC
NOON_UTC = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Deterministic clock: sleeps advance time instantly and are recorded."""

    def __init__(self, start: datetime = NOON_UTC, monotonic_start: float = 1000.0):
        self._now = start
        self._monotonic = monotonic_start
        self.sleeps: List[float] = []
        self.on_sleep: Optional[Callable[[float], None]] = None

    def monotonic(self) -> float:
        return self._monotonic

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._monotonic += seconds
        self._now += timedelta(seconds=seconds)

    def set_now(self, value: datetime) -> None:
        self._now = value

    async def sleep(self, seconds: float, cancel_event: Optional[asyncio.Event] = None) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return False
        self.sleeps.append(seconds)
        if self.on_sleep is not None:
            self.on_sleep(seconds)
        # Let other tasks run, as a real sleep would
        await asyncio.sleep(0)
        if cancel_event is not None and cancel_event.is_set():
            return False
        self.advance(max(0.0, seconds))
        return True


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config():
    """Keeps test overrides from leaking between tests."""
    clear_test_config()
    yield
    clear_test_config()


@pytest.fixture
def test_config(tmp_path: Path) -> Dict[str, Any]:
    """Minimal working configuration with the cache file under tmp_path."""
    config = {
        'OPENWEATHER_API_KEY': 'test-key',
        'weather.latitude': 40.7128,
        'weather.longitude': -74.0060,
        'weather.units': 'imperial',
        'cache.file_path': str(tmp_path / "weather-cache.yaml"),
        'logging.console_output': False,
        'logging.file': None,
    }
    set_config_for_testing(config)
    return config


def _entry(dt: datetime, temp: float, temp_min: float, temp_max: float, pop: float,
           main: str = "Clear", description: str = "clear sky") -> Dict[str, Any]:
    return {
        "dt": int(dt.timestamp()),
        "main": {"temp": temp, "temp_min": temp_min, "temp_max": temp_max},
        "weather": [{"main": main, "description": description}],
        "wind": {"speed": 5.0, "deg": 90, "gust": 6.0},
        "pop": pop,
    }


@pytest.fixture
def forecast_payload() -> Dict[str, Any]:
    """A /forecast document for New York (UTC offset 0 for simpler day maths)."""
    return {
        "cod": "200",
        "list": [
            _entry(NOON_UTC - timedelta(hours=3), 70.0, 68.0, 72.0, 0.1),
            _entry(NOON_UTC, 75.0, 73.0, 80.0, 0.3, "Rain", "light rain"),
            _entry(NOON_UTC + timedelta(hours=3), 74.0, 60.0, 78.0, 0.6, "Rain", "light rain"),
            _entry(NOON_UTC + timedelta(days=1), 65.0, 55.0, 90.0, 0.9, "Thunderstorm", "thunderstorm"),
        ],
        "city": {
            "name": "New York",
            "country": "US",
            "timezone": 0,
            "sunrise": int((NOON_UTC - timedelta(hours=7)).timestamp()),
            "sunset": int((NOON_UTC + timedelta(hours=8)).timestamp()),
        },
    }


@pytest.fixture
def current_payload() -> Dict[str, Any]:
    """A /weather document."""
    return {
        "main": {"temp": 77.5},
        "weather": [{"main": "Clouds", "description": "overcast clouds"}],
        "wind": {"speed": 3.0, "deg": 180},
        "clouds": {"all": 90},
        "name": "New York",
    }


@pytest.fixture
def one_call_payload() -> Dict[str, Any]:
    """A One Call 3.0 document (minutely and hourly excluded)."""
    return {
        "lat": 40.7128,
        "lon": -74.006,
        "timezone": "America/New_York",
        "timezone_offset": -14400,
        "current": {
            "dt": int(NOON_UTC.timestamp()),
            "sunrise": int((NOON_UTC - timedelta(hours=3)).timestamp()),
            "sunset": int((NOON_UTC + timedelta(hours=12)).timestamp()),
            "temp": 76.0,
            "wind_speed": 8.0,
            "wind_deg": 270,
            "wind_gust": 15.0,
            "weather": [{"main": "Clouds", "description": "broken clouds"}],
        },
        "daily": [
            {
                "dt": int(NOON_UTC.timestamp()),
                "sunrise": int((NOON_UTC - timedelta(hours=3)).timestamp()),
                "sunset": int((NOON_UTC + timedelta(hours=12)).timestamp()),
                "temp": {"day": 78.0, "min": 64.0, "max": 84.0},
                "pop": 0.45,
                "weather": [{"main": "Rain", "description": "moderate rain"}],
            },
            {
                "dt": int((NOON_UTC + timedelta(days=1)).timestamp()),
                "temp": {"day": 70.0, "min": 58.0, "max": 72.0},
                "pop": 0.1,
            },
        ],
        "alerts": [
            {"sender_name": "NWS", "event": "Heat Advisory", "start": 0, "end": 0},
            {"sender_name": "NWS", "event": "Heat Advisory", "start": 0, "end": 0},
            {"sender_name": "NWS", "event": "Air Quality Alert", "start": 0, "end": 0},
        ],
    }
