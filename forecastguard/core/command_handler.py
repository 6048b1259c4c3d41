"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the WeatherService and ForecastCache, reporting results and failures
through the UserInterface. Each handler returns True on success so the entry
point can set the process exit code.
"""

import asyncio
import logging
from typing import Optional

from forecastguard.core.services.forecast_cache import ForecastCache
from forecastguard.core.services.weather_service import WeatherService
from forecastguard.domain.interfaces.user_interface import UserInterface
from forecastguard.domain.models.common import ForecastParams
from forecastguard.domain.models.errors import CacheError, FinalError

logger = logging.getLogger(__name__)

class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        weather_service: WeatherService,
        forecast_cache: ForecastCache,
        ui: UserInterface,
    ):
        self.weather_service = weather_service
        self.forecast_cache = forecast_cache
        self.ui = ui

    async def handle_forecast(
        self,
        params: ForecastParams,
        use_cache: bool = True,
        timeout: Optional[float] = None,
        target_units: Optional[str] = None,
    ) -> bool:
        """Handles the 'forecast' command.

        Args:
            params: Location and units to fetch.
            use_cache: Whether the daily forecast cache may be used.
            timeout: Overall deadline in seconds; cancels in-flight work when hit.
            target_units: Unit system to display; the request units if None.
        """
        logger.info(
            f"Handling 'forecast' command: lat={params.latitude}, lon={params.longitude}, "
            f"units={params.units}, use_cache={use_cache}"
        )
        cancel_event = asyncio.Event()
        try:
            weather = await asyncio.wait_for(
                self.weather_service.get_today_weather(
                    params, cancel_event, use_cache=use_cache, target_units=target_units,
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            cancel_event.set()
            logger.error(f"Forecast did not complete within {timeout}s")
            self.ui.display_error(f"Weather request timed out after {timeout}s.")
            return False
        except FinalError as e:
            logger.error(f"Weather request failed: {e}")
            self.ui.display_error(f"Weather request failed: {e}")
            return False
        except ValueError as e:
            logger.error(f"Invalid forecast request or response: {e}")
            self.ui.display_error(str(e))
            return False

        self.ui.display_weather(weather)
        return True

    def handle_cache_show(self) -> bool:
        """Handles the 'cache show' command."""
        record = self.forecast_cache.read_record()
        if record is None:
            self.ui.display_info("No usable weather cache found.")
            return True
        self.ui.display_cache_record(record, today=self.forecast_cache.clock.today())
        return True

    def handle_cache_purge(self) -> bool:
        """Handles the 'cache purge' command."""
        logger.info("Handling 'cache purge' command")
        try:
            self.forecast_cache.purge()
        except CacheError as e:
            logger.error(f"Failed to purge weather cache: {e}")
            self.ui.display_error(f"Failed to purge weather cache: {e}")
            return False
        self.ui.display_info("Weather cache purged.")
        return True
