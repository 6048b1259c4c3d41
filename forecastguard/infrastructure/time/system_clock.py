"""Concrete Clock backed by the process clocks and asyncio sleeps."""

import asyncio
import time
from datetime import datetime
from typing import Optional

from forecastguard.domain.interfaces.clock import Clock


class SystemClock(Clock):
    """Real time: time.monotonic, local datetime.now and cancellable asyncio sleeps."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float, cancel_event: Optional[asyncio.Event] = None) -> bool:
        if cancel_event is None:
            await asyncio.sleep(max(0.0, seconds))
            return True
        if cancel_event.is_set():
            return False
        try:
            # Returns early (cancelled) as soon as the event is set
            await asyncio.wait_for(cancel_event.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return True
        return False


DEFAULT_CLOCK = SystemClock()
