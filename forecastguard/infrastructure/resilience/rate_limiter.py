"""Implementation of a rate limiter.

Controls the frequency of outgoing requests to stay within an upstream's
request quota. Uses a sliding window over recent admission timestamps.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Optional

from forecastguard.domain.interfaces.clock import Clock
from forecastguard.infrastructure.time.system_clock import DEFAULT_CLOCK

DEFAULT_MAX_REQUESTS = 50 # Requests...
DEFAULT_TIME_WINDOW_SECONDS = 60.0 # ...per 60 seconds

class RateLimiter:
    """Sliding window rate limiter with cancellable admission waits.

    State is process-local and in-memory; one instance per upstream client.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in the window.
            window: The window duration in seconds.
            clock: Time source; the system clock if None.
            logger: Logger for admission decisions; the module logger if None.
        """
        if max_requests <= 0 or window <= 0:
            raise ValueError("Max requests and window must be positive.")
        self.max_requests = max_requests
        self.window = float(window)
        self.clock = clock or DEFAULT_CLOCK
        self.logger = logger or logging.getLogger(__name__)
        self.timestamps: Deque[float] = deque()
        self._lock = asyncio.Lock()
        self.logger.info(f"RateLimiter initialized: {max_requests} requests / {window} seconds")

    def _prune(self, now: float) -> None:
        """Removes timestamps that have slid out of the window ending at `now`."""
        cutoff = now - self.window
        while self.timestamps and self.timestamps[0] <= cutoff:
            self.timestamps.popleft()

    async def admit(self, cancel_event: Optional[asyncio.Event] = None) -> bool:
        """Waits until a request is permitted according to the rate limit.

        The lock is held only while the window is inspected, never across the
        sleep, so a queued caller can observe its own cancel_event.

        Args:
            cancel_event: Optional signal that aborts a pending wait.

        Returns:
            True once the request has been admitted and recorded, False if the
            wait was cancelled (nothing is recorded in that case).
        """
        waited = False
        while True:
            async with self._lock:
                now = self.clock.monotonic()
                self._prune(now)
                if len(self.timestamps) < self.max_requests:
                    self.timestamps.append(now)
                    if waited:
                        self.logger.debug("Rate limit permission granted after waiting.")
                    else:
                        self.logger.debug("Rate limit permission granted.")
                    return True

                sleep_for = self.timestamps[0] + self.window - now
                if sleep_for <= 0:
                    self.timestamps.append(now)
                    return True

            self.logger.debug(f"Rate limit reached. Waiting for {sleep_for:.2f} seconds.")
            if not await self.clock.sleep(sleep_for, cancel_event):
                self.logger.debug("Rate limit wait cancelled; request not recorded.")
                return False
            waited = True
            # Loop again: another waiter may have taken the freed slot

    def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be admitted."""
        now = self.clock.monotonic()
        self._prune(now)
        if len(self.timestamps) < self.max_requests:
            return 0.0
        return max(0.0, self.timestamps[0] + self.window - now)
