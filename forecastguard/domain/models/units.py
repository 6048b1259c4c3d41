"""Unit-system conversion for forecast values.

OpenWeather unit systems: `metric` (°C, m/s), `imperial` (°F, mph) and
`standard` (K, m/s). Data is fetched and cached in the request's units;
conversion to a display unit system happens on the merged result only.
"""

import re
from dataclasses import replace
from typing import Optional

from .common import VALID_UNITS
from .weather import TodayWeather

METERS_PER_SECOND_PER_MPH = 0.44704
KELVIN_OFFSET = 273.15

_TEMPERATURE_SUFFIXES = {"imperial": "°F", "metric": "°C", "standard": "K"}
_WIND_SUFFIXES = {"imperial": "mph", "metric": "m/s", "standard": "m/s"}
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def normalize_units(units: str) -> str:
    """Lower-cases `units` and checks it is a known unit system."""
    normalized = (units or "").strip().lower()
    if normalized not in VALID_UNITS:
        raise ValueError(f"units must be one of: {', '.join(VALID_UNITS)}, got '{units}'")
    return normalized


def convert_temperature(value: float, from_units: str, to_units: str) -> float:
    source, target = normalize_units(from_units), normalize_units(to_units)
    if source == target:
        return value

    if source == "imperial":
        celsius = (value - 32) * 5 / 9
    elif source == "standard":
        celsius = value - KELVIN_OFFSET
    else:
        celsius = value

    if target == "imperial":
        return celsius * 9 / 5 + 32
    if target == "standard":
        return celsius + KELVIN_OFFSET
    return celsius


def convert_wind_speed(value: float, from_units: str, to_units: str) -> float:
    source, target = normalize_units(from_units), normalize_units(to_units)
    if _WIND_SUFFIXES[source] == _WIND_SUFFIXES[target]:
        return value
    if source == "imperial":
        return value * METERS_PER_SECOND_PER_MPH
    return value / METERS_PER_SECOND_PER_MPH


def convert_wind_description(description: str, from_units: str, to_units: str) -> str:
    """Rewrites the speeds in a formatted wind description (e.g. "... at 5.0 (gusts to 9.0)")."""
    if _WIND_SUFFIXES[normalize_units(from_units)] == _WIND_SUFFIXES[normalize_units(to_units)]:
        return description
    return _NUMBER.sub(
        lambda match: f"{convert_wind_speed(float(match.group()), from_units, to_units):.1f}",
        description,
    )


def convert_today_weather(weather: TodayWeather, target_units: Optional[str]) -> TodayWeather:
    """Returns `weather` expressed in `target_units`; the input is not modified.

    Temperatures and wind speeds are converted. Rain chance, conditions and
    alerts carry over unchanged.
    """
    if not target_units:
        return weather
    target = normalize_units(target_units)
    source = normalize_units(weather.units)
    if source == target:
        return weather

    stable = replace(
        weather.stable,
        temp_high=convert_temperature(weather.stable.temp_high, source, target),
        temp_low=convert_temperature(weather.stable.temp_low, source, target),
    )
    live = replace(
        weather.live,
        current_temp=convert_temperature(weather.live.current_temp, source, target),
        wind_conditions=convert_wind_description(weather.live.wind_conditions, source, target),
        weather_alerts=list(weather.live.weather_alerts),
    )
    return replace(weather, units=target, stable=stable, live=live)


def unit_suffix(measurement: str, units: str) -> str:
    """Display suffix for a measurement ("temperature" or "wind") in `units`."""
    table = {"temperature": _TEMPERATURE_SUFFIXES, "wind": _WIND_SUFFIXES}.get(measurement, {})
    return table.get((units or "").lower(), "")
