"""Async client for the OpenWeather API.

Hides the HTTP details of the endpoints the forecast integration needs: the
5-day/3-hour forecast (full fetch) and current weather (reduced fetch) of the
2.5 API, or the One Call 3.0 document, which serves both paths.
Each method performs exactly one request, so it can be retried safely by
the RetryExecutor; non-2xx responses raise UpstreamHTTPError.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from forecastguard.domain.models.common import ForecastParams
from forecastguard.domain.models.errors import UpstreamHTTPError

logger = logging.getLogger(__name__)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
FORECAST_ENDPOINT = "/forecast"
CURRENT_WEATHER_ENDPOINT = "/weather"
ONE_CALL_URL = "https://api.openweathermap.org/data/3.0/onecall"
ONE_CALL_EXCLUDE = "minutely,hourly"
DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "forecastguard/0.1"
UPSTREAM_NAME = "openweather"

# Which OpenWeather API serves the forecast
FORECAST_API = "forecast"
ONE_CALL_API = "onecall"
API_MODES = (FORECAST_API, ONE_CALL_API)

# Fallback messages when the error body carries none
_STATUS_MESSAGES = {
    401: "Invalid API key. Please verify your OpenWeather API key.",
    404: "Location not found. Please check your coordinates.",
    429: "API rate limit exceeded. Please try again later.",
}


class OpenWeatherClient:
    """Thin async wrapper over the OpenWeather REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
        one_call_url: str = ONE_CALL_URL,
    ):
        """Initializes the client.

        Args:
            api_key: OpenWeather API key sent as the `appid` query parameter.
            base_url: API root, overridable for tests or proxies.
            timeout: Transport timeout for each request in seconds.
            http_client: Pre-built httpx client (e.g. with a mock transport).
            one_call_url: Absolute URL of the One Call 3.0 endpoint.
        """
        if not api_key:
            raise ValueError("OpenWeather API key not provided.")
        self.api_key = api_key
        self.one_call_url = one_call_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )
        logger.info(f"OpenWeatherClient initialized for {base_url}")

    async def __aenter__(self) -> "OpenWeatherClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _query(self, params: ForecastParams) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "lat": params.latitude,
            "lon": params.longitude,
            "appid": self.api_key,
            "units": params.units,
        }
        if params.count > 0:
            query["cnt"] = params.count
        return query

    async def _get(
        self,
        endpoint: str,
        params: ForecastParams,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        logger.debug(
            f"GET {endpoint} lat={params.latitude} lon={params.longitude} units={params.units}"
        )
        query = self._query(params)
        query.update(extra or {})
        response = await self._client.get(endpoint, params=query)
        logger.debug(f"{endpoint} -> HTTP {response.status_code} ({len(response.content)} bytes)")
        if not response.is_success:
            raise self._parse_error(response)
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamHTTPError(response.status_code, f"invalid JSON body: {e}", UPSTREAM_NAME) from e
        if not isinstance(payload, dict):
            raise UpstreamHTTPError(response.status_code, "unexpected response shape", UPSTREAM_NAME)
        return payload

    async def get_forecast(self, params: ForecastParams) -> Dict[str, Any]:
        """Fetches the 5-day/3-hour forecast document."""
        return await self._get(FORECAST_ENDPOINT, params)

    async def get_current_weather(self, params: ForecastParams) -> Dict[str, Any]:
        """Fetches the current weather document."""
        return await self._get(CURRENT_WEATHER_ENDPOINT, params)

    async def get_one_call(self, params: ForecastParams) -> Dict[str, Any]:
        """Fetches the One Call 3.0 document (current conditions, daily forecast, alerts)."""
        return await self._get(self.one_call_url, params, {"exclude": ONE_CALL_EXCLUDE})

    @staticmethod
    def _parse_error(response: httpx.Response) -> UpstreamHTTPError:
        """Creates an UpstreamHTTPError from an error response."""
        status = response.status_code
        message = None
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
        except ValueError:
            pass # Not JSON; use the status-based message
        if message is None:
            message = _STATUS_MESSAGES.get(status, f"API request failed with status {status}")
        return UpstreamHTTPError(status, message, UPSTREAM_NAME)
