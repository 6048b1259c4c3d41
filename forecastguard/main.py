"""Main entry point for the forecastguard application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Annotated, Any, Coroutine, Dict, Optional

import httpx
import typer

# --- Core Layer ---
from forecastguard.core.command_handler import CommandHandler
from forecastguard.core.services.forecast_cache import ForecastCache
from forecastguard.core.services.weather_service import WeatherService
from forecastguard.domain.interfaces.clock import Clock
from forecastguard.domain.models.common import ForecastParams
from forecastguard.domain.models.units import normalize_units

# --- Infrastructure Layer ---
from forecastguard.infrastructure.cache.cache_store import FileCacheStore
from forecastguard.infrastructure.cli.display import ConsoleDisplay
from forecastguard.infrastructure.config.settings import (
    get_cache_file_path,
    get_config,
    get_display_units,
    get_forecast_params,
    get_logging_settings,
    get_openweather_api_key,
    get_openweather_api_mode,
    get_rate_limit,
    get_retry_policy,
    load_configuration,
)
from forecastguard.infrastructure.monitoring.logger_setup import setup_logging
from forecastguard.infrastructure.resilience.rate_limiter import RateLimiter
from forecastguard.infrastructure.resilience.retry_executor import RetryExecutor
from forecastguard.infrastructure.time.system_clock import DEFAULT_CLOCK
from forecastguard.infrastructure.weather.openweather_client import (
    ONE_CALL_URL,
    OPENWEATHER_BASE_URL,
    UPSTREAM_NAME,
    OpenWeatherClient,
)

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies(
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Optional[Clock] = None,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. Each upstream gets its own RateLimiter
    and RetryExecutor built from its config section.

    Args:
        http_client: Pre-built httpx client for the OpenWeather client.
        clock: Time source shared by every component.
    """
    load_configuration()
    setup_logging(**get_logging_settings())
    logger.info("Configuration and logging initialized.")

    clock = clock or DEFAULT_CLOCK
    dependencies: Dict[str, Any] = {'clock': clock}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['cache_store'] = FileCacheStore(get_cache_file_path())
    dependencies['forecast_cache'] = ForecastCache(dependencies['cache_store'], clock=clock)

    max_requests, window = get_rate_limit(UPSTREAM_NAME)
    policy = get_retry_policy(UPSTREAM_NAME)
    dependencies['rate_limiter'] = RateLimiter(max_requests, window, clock=clock)
    dependencies['retry_executor'] = RetryExecutor(
        policy,
        dependencies['rate_limiter'],
        clock=clock,
        name=UPSTREAM_NAME,
    )

    api_key = get_openweather_api_key()
    if api_key:
        dependencies['openweather_client'] = OpenWeatherClient(
            api_key,
            base_url=str(get_config('openweather.base_url', OPENWEATHER_BASE_URL)),
            timeout=policy.attempt_timeout,
            http_client=http_client,
            one_call_url=str(get_config('openweather.one_call_url', ONE_CALL_URL)),
        )
        dependencies['weather_service'] = WeatherService(
            dependencies['openweather_client'],
            dependencies['retry_executor'],
            forecast_cache=dependencies['forecast_cache'],
            clock=clock,
            api_mode=get_openweather_api_mode(),
        )
    else:
        logger.warning("OpenWeather API key not found, forecast command disabled.")
        dependencies['openweather_client'] = None
        dependencies['weather_service'] = None

    dependencies['command_handler'] = CommandHandler(
        weather_service=dependencies['weather_service'],
        forecast_cache=dependencies['forecast_cache'],
        ui=dependencies['ui'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="forecastguard",
    help="forecastguard: today's weather with rate limiting, retries and a daily forecast cache.",
    add_completion=False,
)
cache_app = typer.Typer(help="Inspect or purge the daily forecast cache.")
app.add_typer(cache_app, name="cache")

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> bool:
    """Runs an async handler from a sync Typer command."""
    return asyncio.run(coro)

def _exit_on_failure(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)

def _resolve_params(
    lat: Optional[float],
    lon: Optional[float],
    units: Optional[str],
) -> ForecastParams:
    """Command-line values override the configured location and units."""
    if lat is not None and lon is not None:
        configured_units = str(get_config('weather.units', '') or '').strip() or 'imperial'
        return ForecastParams(latitude=lat, longitude=lon, units=(units or configured_units).lower())
    params = get_forecast_params()
    if lat is not None or lon is not None:
        params = ForecastParams(
            latitude=params.latitude if lat is None else lat,
            longitude=params.longitude if lon is None else lon,
            units=params.units,
        )
    if units:
        params = ForecastParams(params.latitude, params.longitude, units.lower(), params.count)
    return params

async def _run_forecast(
    dependencies: Dict[str, Any],
    params: ForecastParams,
    use_cache: bool,
    timeout: Optional[float],
    target_units: Optional[str],
) -> bool:
    handler: CommandHandler = dependencies['command_handler']
    async with dependencies['openweather_client']:
        return await handler.handle_forecast(
            params, use_cache=use_cache, timeout=timeout, target_units=target_units,
        )

# --- CLI Commands ---

@app.command()
def forecast(
    lat: Annotated[Optional[float], typer.Option("--lat", help="Latitude (-90..90). Uses weather.latitude if not set.")] = None,
    lon: Annotated[Optional[float], typer.Option("--lon", help="Longitude (-180..180). Uses weather.longitude if not set.")] = None,
    units: Annotated[Optional[str], typer.Option("--units", "-u", help="Request units: metric, imperial or standard.")] = None,
    display_units: Annotated[Optional[str], typer.Option("--display-units", "-d", help="Convert shown values to metric, imperial or standard.")] = None,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Always perform a full fetch and skip the cache.")] = False,
    timeout: Annotated[Optional[float], typer.Option("--timeout", "-t", min=0.1, help="Overall deadline in seconds.")] = None,
):
    """Show today's weather, reusing the cached daily forecast when valid."""
    dependencies = create_dependencies()
    ui: ConsoleDisplay = dependencies['ui']
    if dependencies['weather_service'] is None:
        ui.display_error("OpenWeather API key not configured. Set OPENWEATHER_API_KEY or apis.openweather.")
        raise typer.Exit(code=1)
    try:
        params = _resolve_params(lat, lon, units)
        target_units = normalize_units(display_units) if display_units else get_display_units()
    except ValueError as e:
        ui.display_error(str(e))
        raise typer.Exit(code=1)
    _exit_on_failure(run_async(_run_forecast(dependencies, params, not no_cache, timeout, target_units)))

@cache_app.command("show")
def cache_show():
    """Print the cache record and whether it is valid for today."""
    handler: CommandHandler = create_dependencies()['command_handler']
    _exit_on_failure(handler.handle_cache_show())

@cache_app.command("purge")
def cache_purge():
    """Delete the cache file; the next forecast performs a full fetch."""
    handler: CommandHandler = create_dependencies()['command_handler']
    _exit_on_failure(handler.handle_cache_purge())

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
