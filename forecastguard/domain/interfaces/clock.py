"""Interface for time sources.

Defines the contract for reading monotonic and wall-clock time and for
suspending the caller. The clock is injected everywhere time matters so that
rate-limit windows, backoff sleeps and day boundaries can be simulated in tests.
"""

import abc
import asyncio
from datetime import date, datetime
from typing import Optional


class Clock(abc.ABC):
    """Abstract Base Class for time and cancellable sleeps."""

    @abc.abstractmethod
    def monotonic(self) -> float:
        """Returns a monotonic timestamp in seconds (for durations only)."""
        pass

    @abc.abstractmethod
    def now(self) -> datetime:
        """Returns the current local wall-clock time."""
        pass

    def today(self) -> date:
        """Returns the current local calendar date."""
        return self.now().date()

    @abc.abstractmethod
    async def sleep(self, seconds: float, cancel_event: Optional[asyncio.Event] = None) -> bool:
        """Suspends the caller for `seconds` or until `cancel_event` is set.

        Args:
            seconds: Duration to wait.
            cancel_event: Optional caller-supplied cancellation signal.

        Returns:
            True if the full duration elapsed, False if the wait was cancelled.
        """
        pass
