"""Forecast cache policy: day-scoped validity and stable/live merging.

On every call the cache is in one of two states, decided afresh from the
stored record:

- NoValidCache: perform the full fetch, write its stable subset back tagged
  with today's date and the location key, and return the full result.
- ValidCache: perform the reduced (live fields only) fetch and merge it over
  the cached stable fields. Any failure on this path degrades to the full
  fetch; a half-populated result is never returned.

The cache is an optimisation only. Read and write failures are logged and
never fail the fetch.
"""

import logging
from typing import Awaitable, Callable, Optional

from forecastguard.domain.events.api_events import DomainEvent, ReducedFetchFallback
from forecastguard.domain.interfaces.cache import CacheStore
from forecastguard.domain.interfaces.clock import Clock
from forecastguard.domain.models.common import LocationKey
from forecastguard.domain.models.errors import (
    CacheError,
    CacheNotFoundError,
    ErrorKind,
    FinalError,
)
from forecastguard.domain.models.weather import (
    CacheRecord,
    FullForecast,
    LiveConditions,
    TodayWeather,
    merge_forecast,
)
from forecastguard.infrastructure.time.system_clock import DEFAULT_CLOCK

FullFetch = Callable[[], Awaitable[FullForecast]]
ReducedFetch = Callable[[], Awaitable[LiveConditions]]

# Kinds that say the request itself is wrong; a full fetch would fail the same way
TERMINAL_KINDS = frozenset({ErrorKind.AUTH_ERROR, ErrorKind.INVALID_REQUEST, ErrorKind.CANCELLED})


class ForecastCache:
    """Decides between the reduced and full fetch paths for today's forecast."""

    def __init__(
        self,
        cache_store: CacheStore,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.cache_store = cache_store
        self.clock = clock or DEFAULT_CLOCK
        self.logger = logger or logging.getLogger(__name__)

    def _dispatch(self, event: DomainEvent) -> None:
        self.logger.debug(f"EVENT: {event}")

    def read_record(self) -> Optional[CacheRecord]:
        """Returns the stored record, or None if it is missing or unusable."""
        try:
            return self.cache_store.read()
        except CacheNotFoundError as e:
            self.logger.debug(f"No weather cache: {e}")
        except CacheError as e:
            self.logger.warning(f"Ignoring unusable weather cache: {e}")
        return None

    def load_valid(self, location_key: LocationKey) -> Optional[CacheRecord]:
        """Returns the stored record only if it may be reused for `location_key` today."""
        record = self.read_record()
        if record is None:
            return None
        today = self.clock.today()
        if record.created_on_date != today:
            self.logger.debug(f"Cache is stale: created={record.created_on_date}, today={today}")
            return None
        if not record.location_key.matches(location_key):
            self.logger.debug("Cache location mismatch, fetching fresh data")
            return None
        return record if record.is_valid_for(location_key, today) else None

    def build_record(self, location_key: LocationKey, full: FullForecast) -> CacheRecord:
        now = self.clock.now()
        return CacheRecord(
            created_on_date=now.date(),
            created_at=int(now.timestamp()),
            location=full.location,
            latitude=location_key.latitude,
            longitude=location_key.longitude,
            units=location_key.units,
            stable=full.stable,
        )

    def store(self, location_key: LocationKey, full: FullForecast) -> bool:
        """Writes the stable subset of `full`; returns False if the write failed."""
        try:
            self.cache_store.write(self.build_record(location_key, full))
        except CacheError as e:
            self.logger.warning(f"Failed to write weather cache: {e}")
            return False
        return True

    def purge(self) -> None:
        """Operator-invoked removal of the cache file."""
        self.cache_store.delete()

    async def fetch(
        self,
        location_key: LocationKey,
        full_fetch: FullFetch,
        reduced_fetch: ReducedFetch,
    ) -> TodayWeather:
        """Returns today's weather, reusing cached stable fields when valid.

        Args:
            location_key: Location and units of the current request.
            full_fetch: Performs the full upstream fetch (stable and live fields).
            reduced_fetch: Performs the live-fields-only upstream fetch.

        Raises:
            FinalError: If the full fetch fails, or the reduced fetch fails with an
                auth, invalid-request or cancellation error.
        """
        record = self.load_valid(location_key)
        if record is not None:
            self.logger.debug("Using cached weather data for stable forecast values")
            try:
                live = await reduced_fetch()
                result = merge_forecast(
                    stable=record.stable,
                    live=live,
                    location=record.location,
                    units=record.units,
                    now=self.clock.now(),
                    from_cache=True,
                )
            except FinalError as e:
                if e.kind in TERMINAL_KINDS:
                    raise
                self._fall_back(e)
            except Exception as e:
                self._fall_back(e)
            else:
                self.logger.info("Weather data retrieved using cache + current conditions")
                return result

        self.logger.debug("Fetching full weather forecast from upstream")
        full = await full_fetch()
        self.store(location_key, full)
        return merge_forecast(
            stable=full.stable,
            live=full.live,
            location=full.location,
            units=location_key.units,
            now=self.clock.now(),
            from_cache=False,
        )

    def _fall_back(self, error: Exception) -> None:
        self.logger.warning(f"Failed to fetch current conditions, falling back to full fetch: {error}")
        self._dispatch(ReducedFetchFallback(reason=str(error), error_type=type(error).__name__))
