import io
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
from rich.console import Console
from rich.panel import Panel

from forecastguard.domain.models.weather import (
    CacheRecord,
    LiveConditions,
    StableForecast,
    TodayWeather,
)
from forecastguard.infrastructure.cli.display import ConsoleDisplay

STABLE = StableForecast(80.0, 60.0, 1749963600, 1750017600, "New York", "US", 0)


def _weather(from_cache: bool, alerts=None) -> TodayWeather:
    return TodayWeather(
        location="New York, US",
        units="imperial",
        stable=STABLE,
        live=LiveConditions(75.0, "light rain", 0.6, "Gentle E winds at 5.0", alerts or []),
        last_updated=datetime(2025, 6, 15, 12, tzinfo=timezone.utc),
        from_cache=from_cache,
    )


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def console_display(output):
    """ConsoleDisplay rendering into a string buffer."""
    return ConsoleDisplay(console=Console(file=output, width=100, color_system=None))


def test_display_weather(console_display: ConsoleDisplay, output):
    console_display.display_weather(_weather(from_cache=False, alerts=["light rain"]))
    text = output.getvalue()

    assert "New York, US" in text
    assert "75°F, light rain" in text
    assert "80°F / 60°F" in text
    assert "60%" in text
    assert "Wind (mph)" in text
    assert "Alerts" in text
    assert "full forecast" in text


def test_display_weather_from_cache(console_display: ConsoleDisplay, output):
    console_display.display_weather(_weather(from_cache=True))
    text = output.getvalue()

    assert "cached daily forecast + live conditions" in text
    assert "Alerts" not in text


def test_display_weather_uses_unit_suffixes(console_display: ConsoleDisplay, output):
    weather = _weather(from_cache=False)
    weather.units = "metric"
    console_display.display_weather(weather)
    text = output.getvalue()

    assert "75°C" in text
    assert "Wind (m/s)" in text


def test_display_cache_record_flags_stale(console_display: ConsoleDisplay, output):
    record = CacheRecord(date(2025, 6, 14), 0, "New York, US", 40.7128, -74.006, "imperial", STABLE)
    console_display.display_cache_record(record, today=date(2025, 6, 15))
    text = output.getvalue()

    assert "2025-06-14" in text
    assert "stale" in text


def test_display_error_uses_panel():
    mock_console = MagicMock()
    display = ConsoleDisplay(console=mock_console)

    display.display_error("Weather request failed")

    mock_console.print.assert_called_once()
    args, _ = mock_console.print.call_args
    assert isinstance(args[0], Panel)
