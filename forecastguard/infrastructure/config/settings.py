"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.forecastguard/config.yaml). Typed accessors build
the per-upstream rate limits and retry policies the resilience layer needs.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from forecastguard.domain.models.common import VALID_UNITS, ForecastParams, RetryPolicy
from forecastguard.infrastructure.weather.openweather_client import API_MODES, FORECAST_API

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".forecastguard"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
DEFAULT_CACHE_FILE_NAME = "forecastguard-weather-cache.yaml"
RATE_LIMIT_WINDOW_SECONDS = 60.0 # rate_limit values are requests per minute

# Per-upstream resilience defaults; each upstream gets its own limiter and policy.
# Unknown upstream names fall back to the openweather entry.
UPSTREAM_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "openweather": {"rate_limit": 50, "max_retries": 3, "base_delay_ms": 1000, "max_delay_ms": 8000, "timeout_s": 30},
}
DEFAULT_JITTER_FRACTION = 0.1

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides (set_config_for_testing)
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    config_file = Path(config_file)
    if config_file.is_file():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env found).")

    # 3. Environment Variables (Highest priority) are handled in get_config
    _loaded = True
    logger.info("Configuration loading process completed.")

def _convert_env_value(value: str) -> Any:
    """Converts common string forms from the environment to Python types."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def _lookup_nested(key: str) -> Tuple[bool, Any]:
    """Resolves a dotted key through nested YAML mappings (then as a flat key)."""
    node: Any = _config
    for part in key.split('.'):
        if isinstance(node, dict) and part in node:
            node = node[part]
        else:
            break
    else:
        return True, node
    if key in _config:
        return True, _config[key]
    return False, None

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (FORECASTGUARD_<KEY> or <KEY>, dots become underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'weather.latitude'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    for candidate in (f"FORECASTGUARD_{env_key}", env_key):
        if candidate in os.environ:
            return _convert_env_value(os.environ[candidate])

    found, value = _lookup_nested(key)
    if found:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

# --- Convenience Functions ---

def get_openweather_api_key() -> Optional[str]:
    """Convenience function to get the OpenWeather API key."""
    # Checks ENV OPENWEATHER_API_KEY first, then yaml apis.openweather
    key = get_config('OPENWEATHER_API_KEY') or get_config('apis.openweather')
    return str(key) if key else None

def get_forecast_params() -> ForecastParams:
    """Builds ForecastParams from the weather section (units default to imperial)."""
    latitude = get_config('weather.latitude')
    longitude = get_config('weather.longitude')
    if latitude is None or longitude is None:
        raise ValueError("weather.latitude and weather.longitude must be configured")
    units = str(get_config('weather.units', '') or '').strip() or 'imperial'
    return ForecastParams(latitude=float(latitude), longitude=float(longitude), units=units.lower())

def get_display_units() -> Optional[str]:
    """Unit system for displayed values (`weather.display_units`); None keeps the request units."""
    units = str(get_config('weather.display_units', '') or '').strip().lower()
    if not units:
        return None
    if units not in VALID_UNITS:
        logger.warning(f"Ignoring unknown weather.display_units '{units}'")
        return None
    return units

def get_openweather_api_mode() -> str:
    """Which OpenWeather API serves forecasts (`openweather.api`): forecast or onecall."""
    mode = str(get_config('openweather.api', FORECAST_API) or FORECAST_API).strip().lower()
    if mode not in API_MODES:
        logger.warning(f"Unknown openweather.api '{mode}', using '{FORECAST_API}'")
        return FORECAST_API
    return mode

def _upstream_setting(upstream: str, name: str) -> Any:
    defaults = UPSTREAM_DEFAULTS.get(upstream, UPSTREAM_DEFAULTS['openweather'])
    value = get_config(f'{upstream}.{name}')
    # Missing or non-positive values fall back to the upstream default
    if value is None or (isinstance(value, (int, float)) and value <= 0):
        return defaults[name]
    return value

def get_rate_limit(upstream: str) -> Tuple[int, float]:
    """Returns (max_requests, window_seconds) for an upstream."""
    return int(_upstream_setting(upstream, 'rate_limit')), RATE_LIMIT_WINDOW_SECONDS

def get_retry_policy(upstream: str) -> RetryPolicy:
    """Builds the RetryPolicy for an upstream from its config section."""
    jitter = get_config(f'{upstream}.jitter_fraction', DEFAULT_JITTER_FRACTION)
    return RetryPolicy(
        max_attempts=int(_upstream_setting(upstream, 'max_retries')),
        base_delay=float(_upstream_setting(upstream, 'base_delay_ms')) / 1000.0,
        max_delay=float(_upstream_setting(upstream, 'max_delay_ms')) / 1000.0,
        jitter_fraction=float(jitter),
        attempt_timeout=float(_upstream_setting(upstream, 'timeout_s')),
    )

def get_cache_file_path() -> Path:
    """Path of the weather cache file (system temp directory by default)."""
    configured = str(get_config('cache.file_path', '') or '').strip()
    if configured:
        return Path(configured).expanduser()
    return Path(tempfile.gettempdir()) / DEFAULT_CACHE_FILE_NAME

def get_logging_settings() -> Dict[str, Any]:
    """Logging options for setup_logging."""
    level_name = str(get_config('logging.level', 'INFO')).upper()
    log_file = get_config('logging.file')
    return {
        'log_level': getattr(logging, level_name, logging.INFO),
        'log_file': str(log_file) if log_file else None,
        'max_bytes': int(get_config('logging.max_size_mb', 10)) * 1024 * 1024,
        'backup_count': int(get_config('logging.max_files', 7)),
        'console': bool(get_config('logging.console_output', True)),
    }

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
