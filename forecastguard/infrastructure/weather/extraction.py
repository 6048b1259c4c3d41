"""Turns OpenWeather response documents into domain forecast models.

`extract_full_forecast` reads the 5-day/3-hour forecast document and yields
both stable and live fields; `extract_live_conditions` reads the current
weather document and yields live fields only. The One Call 3.0 document
carries both subsets, so `extract_one_call_forecast` and
`extract_one_call_live` read the same payload.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from forecastguard.domain.models.weather import FullForecast, LiveConditions, StableForecast

logger = logging.getLogger(__name__)

NOTABLE_CONDITIONS = frozenset({
    "Thunderstorm", "Rain", "Snow", "Drizzle", "Mist", "Fog",
    "Haze", "Dust", "Sand", "Ash", "Squall", "Tornado",
})

CARDINAL_DIRECTIONS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


def is_notable_condition(condition: str) -> bool:
    """Whether a condition group (e.g. 'Rain') should be reported as an alert."""
    return condition in NOTABLE_CONDITIONS


def degrees_to_cardinal(degrees: float) -> str:
    """Converts a wind bearing in degrees to a 16-point compass direction."""
    normalized = int(degrees + 360) % 360
    index = int((normalized + 11.25) / 22.5) % 16
    return CARDINAL_DIRECTIONS[index]


def format_wind_conditions(wind: Optional[Mapping[str, Any]]) -> str:
    """Creates a human-readable wind description (thresholds suit m/s and mph)."""
    wind = wind or {}
    speed = float(wind.get("speed") or 0.0)
    if speed == 0:
        return "Calm"

    if speed < 2:
        label = "Light"
    elif speed < 6:
        label = "Gentle"
    elif speed < 12:
        label = "Moderate"
    elif speed < 20:
        label = "Fresh"
    elif speed < 30:
        label = "Strong"
    else:
        label = "Very Strong"

    direction = degrees_to_cardinal(float(wind.get("deg") or 0.0))
    description = f"{label} {direction} winds at {speed:.1f}"

    gust = float(wind.get("gust") or 0.0)
    if gust > speed * 1.5:
        description += f" (gusts to {gust:.1f})"
    return description


def _first_description(conditions: List[Mapping[str, Any]], default: str = "Clear") -> str:
    if conditions:
        return str(conditions[0].get("description") or default)
    return default


def _alerts_from(conditions: List[Mapping[str, Any]], seen: Optional[set] = None) -> List[str]:
    seen = set() if seen is None else seen
    alerts = []
    for condition in conditions:
        description = condition.get("description")
        if is_notable_condition(str(condition.get("main", ""))) and description and description not in seen:
            alerts.append(description)
            seen.add(description)
    return alerts


def extract_full_forecast(payload: Mapping[str, Any], now: datetime) -> FullForecast:
    """Extracts today's stable and live fields from a forecast document.

    "Today" is the calendar day in the forecast city's timezone. If the
    document holds no entry for today (late evening), the first entry is used.

    Args:
        payload: Decoded `/forecast` response.
        now: Current time; naive values are taken as local time.

    Raises:
        ValueError: If the document has no forecast entries or lacks fields.
    """
    entries: List[Dict[str, Any]] = list(payload.get("list") or [])
    if not entries:
        raise ValueError("empty forecast data")
    city: Mapping[str, Any] = payload.get("city") or {}

    offset = int(city.get("timezone") or 0)
    city_tz = timezone(timedelta(seconds=offset))
    now_utc = now.astimezone(timezone.utc)
    today = now_utc.astimezone(city_tz).date()
    now_ts = now_utc.timestamp()

    try:
        today_entries = [
            entry for entry in entries
            if datetime.fromtimestamp(int(entry["dt"]), tz=city_tz).date() == today
        ]
        if not today_entries:
            logger.warning(
                f"No forecast data for {today.isoformat()}, using next available entry "
                f"({len(entries)} entries)"
            )
            today_entries = [entries[0]]

        current = min(today_entries, key=lambda entry: abs(int(entry["dt"]) - now_ts))
        temp_high = max(float(entry["main"]["temp_max"]) for entry in today_entries)
        temp_low = min(float(entry["main"]["temp_min"]) for entry in today_entries)
        rain_chance = max(float(entry.get("pop") or 0.0) for entry in today_entries)
        current_temp = float(current["main"]["temp"])
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed forecast entry: {e}") from e

    seen: set = set()
    alerts: List[str] = []
    for entry in today_entries:
        alerts.extend(_alerts_from(entry.get("weather") or [], seen))

    city_name = str(city.get("name") or "")
    country = str(city.get("country") or "")
    stable = StableForecast(
        temp_high=temp_high,
        temp_low=temp_low,
        sunrise=int(city.get("sunrise") or 0),
        sunset=int(city.get("sunset") or 0),
        city_name=city_name,
        country=country,
        timezone_offset=offset,
    )
    live = LiveConditions(
        current_temp=current_temp,
        current_conditions=_first_description(current.get("weather") or []),
        rain_chance=rain_chance,
        wind_conditions=format_wind_conditions(current.get("wind")),
        weather_alerts=alerts,
    )
    location = f"{city_name}, {country}" if country else city_name
    logger.info(
        f"Weather data extracted: location={location}, high={temp_high}, low={temp_low}, "
        f"current={current_temp}, alerts={len(alerts)}"
    )
    return FullForecast(location=location, stable=stable, live=live)


def extract_live_conditions(payload: Mapping[str, Any]) -> LiveConditions:
    """Extracts live fields from a current weather document.

    Raises:
        ValueError: If the document lacks the current temperature.
    """
    try:
        current_temp = float(payload["main"]["temp"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"malformed current weather document: {e}") from e

    conditions = payload.get("weather") or []
    rain = payload.get("rain") or {}
    snow = payload.get("snow") or {}
    clouds = int((payload.get("clouds") or {}).get("all") or 0)

    if float(rain.get("1h") or 0) > 0 or float(snow.get("1h") or 0) > 0:
        rain_chance = 1.0 # Currently raining or snowing
    elif clouds > 80:
        rain_chance = clouds / 100.0
    else:
        rain_chance = 0.0

    return LiveConditions(
        current_temp=current_temp,
        current_conditions=_first_description(conditions),
        rain_chance=rain_chance,
        wind_conditions=format_wind_conditions(payload.get("wind")),
        weather_alerts=_alerts_from(conditions),
    )


def _one_call_today(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    daily = payload.get("daily") or []
    if not daily:
        raise ValueError("empty One Call data")
    return daily[0]


def _one_call_alerts(payload: Mapping[str, Any]) -> List[str]:
    alerts: List[str] = []
    for alert in payload.get("alerts") or []:
        event = alert.get("event")
        if event and event not in alerts:
            alerts.append(str(event))
    return alerts


def extract_one_call_live(payload: Mapping[str, Any]) -> LiveConditions:
    """Extracts live fields from a One Call document.

    Rain chance is today's `daily[0].pop`; alerts are the events of the
    document's `alerts` list.

    Raises:
        ValueError: If the document has no daily entries or no current temperature.
    """
    today = _one_call_today(payload)
    current: Mapping[str, Any] = payload.get("current") or {}
    try:
        current_temp = float(current["temp"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"malformed One Call document: {e}") from e

    wind = {
        "speed": current.get("wind_speed"),
        "deg": current.get("wind_deg"),
        "gust": current.get("wind_gust"),
    }
    return LiveConditions(
        current_temp=current_temp,
        current_conditions=_first_description(current.get("weather") or []),
        rain_chance=float(today.get("pop") or 0.0),
        wind_conditions=format_wind_conditions(wind),
        weather_alerts=_one_call_alerts(payload),
    )


def extract_one_call_forecast(payload: Mapping[str, Any]) -> FullForecast:
    """Extracts today's stable and live fields from a One Call document.

    The document has no place name; the IANA timezone name stands in for it.

    Raises:
        ValueError: If the document has no daily entries or lacks fields.
    """
    today = _one_call_today(payload)
    live = extract_one_call_live(payload)
    try:
        temp_high = float(today["temp"]["max"])
        temp_low = float(today["temp"]["min"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"malformed One Call daily entry: {e}") from e

    current: Mapping[str, Any] = payload.get("current") or {}
    place = str(payload.get("timezone") or "")
    stable = StableForecast(
        temp_high=temp_high,
        temp_low=temp_low,
        sunrise=int(today.get("sunrise") or current.get("sunrise") or 0),
        sunset=int(today.get("sunset") or current.get("sunset") or 0),
        city_name=place,
        country="",
        timezone_offset=int(payload.get("timezone_offset") or 0),
    )
    logger.info(
        f"One Call data extracted: location={place}, high={temp_high}, low={temp_low}, "
        f"current={live.current_temp}, alerts={len(live.weather_alerts)}"
    )
    return FullForecast(location=place, stable=stable, live=live)
