"""Application service for today's weather.

Wires the OpenWeather client through the upstream's RetryExecutor (and so its
RateLimiter) and lets the ForecastCache choose between the full and reduced
fetch paths. The configured API mode picks the documents behind those paths:
`/forecast` and `/weather` of the 2.5 API, or the One Call 3.0 document for
both.
"""

import asyncio
import logging
from typing import Optional

from forecastguard.core.services.forecast_cache import ForecastCache
from forecastguard.domain.interfaces.clock import Clock
from forecastguard.domain.models.common import ForecastParams, validate_forecast_params
from forecastguard.domain.models.units import convert_today_weather, normalize_units
from forecastguard.domain.models.weather import (
    FullForecast,
    LiveConditions,
    TodayWeather,
    merge_forecast,
)
from forecastguard.infrastructure.resilience.retry_executor import RetryExecutor
from forecastguard.infrastructure.time.system_clock import DEFAULT_CLOCK
from forecastguard.infrastructure.weather.extraction import (
    extract_full_forecast,
    extract_live_conditions,
    extract_one_call_forecast,
    extract_one_call_live,
)
from forecastguard.infrastructure.weather.openweather_client import (
    API_MODES,
    FORECAST_API,
    ONE_CALL_API,
    OpenWeatherClient,
)

logger = logging.getLogger(__name__)


class WeatherService:
    """Fetches today's weather with rate limiting, retries and the daily cache."""

    def __init__(
        self,
        client: OpenWeatherClient,
        executor: RetryExecutor,
        forecast_cache: Optional[ForecastCache] = None,
        clock: Optional[Clock] = None,
        api_mode: str = FORECAST_API,
    ):
        if api_mode not in API_MODES:
            raise ValueError(f"api mode must be one of: {', '.join(API_MODES)}, got '{api_mode}'")
        self.client = client
        self.executor = executor
        self.forecast_cache = forecast_cache
        self.clock = clock or DEFAULT_CLOCK
        self.api_mode = api_mode

    async def fetch_full(self, params: ForecastParams, cancel_event: Optional[asyncio.Event] = None) -> FullForecast:
        """Full fetch: both stable and live fields."""
        if self.api_mode == ONE_CALL_API:
            payload = await self.executor.run(lambda: self.client.get_one_call(params), cancel_event)
            return extract_one_call_forecast(payload)
        payload = await self.executor.run(lambda: self.client.get_forecast(params), cancel_event)
        return extract_full_forecast(payload, self.clock.now())

    async def fetch_live(self, params: ForecastParams, cancel_event: Optional[asyncio.Event] = None) -> LiveConditions:
        """Reduced fetch: live fields only."""
        if self.api_mode == ONE_CALL_API:
            payload = await self.executor.run(lambda: self.client.get_one_call(params), cancel_event)
            return extract_one_call_live(payload)
        payload = await self.executor.run(lambda: self.client.get_current_weather(params), cancel_event)
        return extract_live_conditions(payload)

    async def get_today_weather(
        self,
        params: ForecastParams,
        cancel_event: Optional[asyncio.Event] = None,
        use_cache: bool = True,
        target_units: Optional[str] = None,
    ) -> TodayWeather:
        """Returns today's weather for `params`.

        Args:
            params: Location and the units the upstream is asked for (and the
                cache is keyed by).
            cancel_event: Aborts pending rate-limit and backoff waits.
            use_cache: Whether the daily forecast cache may be used.
            target_units: Unit system of the returned values; the request units
                if None.

        Raises:
            ValueError: If `params` or `target_units` are invalid (no request is made).
            FinalError: If the upstream could not be reached or rejected the request.
        """
        validate_forecast_params(params)
        if target_units:
            target_units = normalize_units(target_units)
        key = params.location_key

        if use_cache and self.forecast_cache is not None:
            weather = await self.forecast_cache.fetch(
                key,
                full_fetch=lambda: self.fetch_full(params, cancel_event),
                reduced_fetch=lambda: self.fetch_live(params, cancel_event),
            )
        else:
            logger.debug("Cache disabled; performing full fetch")
            full = await self.fetch_full(params, cancel_event)
            weather = merge_forecast(
                stable=full.stable,
                live=full.live,
                location=full.location,
                units=key.units,
                now=self.clock.now(),
                from_cache=False,
            )

        if target_units and target_units != weather.units:
            logger.debug(f"Converting weather from {weather.units} to {target_units}")
            weather = convert_today_weather(weather, target_units)
        return weather
