import asyncio
import contextlib
import time

import pytest

from forecastguard.infrastructure.resilience.rate_limiter import RateLimiter
from forecastguard.infrastructure.time.system_clock import SystemClock


def _max_in_any_window(timestamps, window):
    stamps = sorted(timestamps)
    best = 0
    for i, start in enumerate(stamps):
        count = sum(1 for t in stamps[i:] if t < start + window)
        best = max(best, count)
    return best


def test_rejects_non_positive_configuration(fake_clock):
    with pytest.raises(ValueError):
        RateLimiter(0, 60.0, clock=fake_clock)
    with pytest.raises(ValueError):
        RateLimiter(5, 0, clock=fake_clock)


def test_two_per_minute_scenario(fake_clock):
    """First two admits are immediate, the third waits until the first slides out."""
    limiter = RateLimiter(2, 60.0, clock=fake_clock)
    start = fake_clock.monotonic()

    async def scenario():
        results = []
        for _ in range(3):
            results.append(await limiter.admit())
            results.append(fake_clock.monotonic() - start)
        return results

    first, t1, second, t2, third, t3 = asyncio.run(scenario())

    assert first and second and third
    assert t1 == 0 and t2 == 0
    assert t3 == pytest.approx(60.0)
    assert fake_clock.sleeps == [pytest.approx(60.0)]


def test_admission_bound_holds_over_many_calls(fake_clock):
    limiter = RateLimiter(3, 10.0, clock=fake_clock)
    admitted = []

    async def scenario():
        for i in range(20):
            await limiter.admit()
            admitted.append(fake_clock.monotonic())
            # Irregular gaps between requests
            fake_clock.advance([0.0, 1.5, 4.0, 0.2][i % 4])

    asyncio.run(scenario())

    assert len(admitted) == 20
    assert _max_in_any_window(admitted, 10.0) <= 3


def test_concurrent_admits_respect_bound(fake_clock):
    limiter = RateLimiter(2, 60.0, clock=fake_clock)
    admitted = []

    async def one():
        await limiter.admit()
        admitted.append(fake_clock.monotonic())

    async def scenario():
        await asyncio.gather(*(one() for _ in range(5)))

    asyncio.run(scenario())

    assert len(admitted) == 5
    assert _max_in_any_window(admitted, 60.0) <= 2


def test_cancelled_wait_is_not_recorded(fake_clock):
    limiter = RateLimiter(1, 60.0, clock=fake_clock)
    cancel_event = asyncio.Event()

    async def scenario():
        assert await limiter.admit()
        fake_clock.on_sleep = lambda seconds: cancel_event.set()
        return await limiter.admit(cancel_event)

    assert asyncio.run(scenario()) is False
    assert len(limiter.timestamps) == 1


def test_already_cancelled_wait_returns_false(fake_clock):
    limiter = RateLimiter(1, 60.0, clock=fake_clock)
    cancel_event = asyncio.Event()
    cancel_event.set()

    async def scenario():
        await limiter.admit()
        return await limiter.admit(cancel_event)

    assert asyncio.run(scenario()) is False
    assert fake_clock.sleeps == []
    assert len(limiter.timestamps) == 1


def test_get_wait_time(fake_clock):
    limiter = RateLimiter(1, 30.0, clock=fake_clock)
    assert limiter.get_wait_time() == 0.0

    asyncio.run(limiter.admit())
    fake_clock.advance(10.0)
    assert limiter.get_wait_time() == pytest.approx(20.0)

    fake_clock.advance(20.0)
    assert limiter.get_wait_time() == 0.0


def test_queued_caller_cancels_while_another_caller_sleeps():
    """A waiter behind another sleeping waiter still sees its own cancel event."""
    limiter = RateLimiter(1, 1.5, clock=SystemClock())
    cancel_event = asyncio.Event()

    async def scenario():
        assert await limiter.admit()
        sleeper = asyncio.create_task(limiter.admit())
        await asyncio.sleep(0.02)
        queued = asyncio.create_task(limiter.admit(cancel_event))
        await asyncio.sleep(0.05)

        started = time.monotonic()
        cancel_event.set()
        result = await asyncio.wait_for(queued, timeout=1.0)
        elapsed = time.monotonic() - started

        sleeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sleeper
        return result, elapsed

    result, elapsed = asyncio.run(scenario())

    assert result is False
    assert elapsed < 0.5
    assert len(limiter.timestamps) == 1


def test_waiters_recheck_the_window_after_waking(fake_clock):
    limiter = RateLimiter(1, 60.0, clock=fake_clock)
    admitted = []

    async def one():
        assert await limiter.admit()
        admitted.append(fake_clock.monotonic())

    async def scenario():
        await limiter.admit()
        await asyncio.gather(one(), one(), one())

    asyncio.run(scenario())

    assert len(admitted) == 3
    assert len(set(admitted)) == 3
    assert _max_in_any_window(admitted + [1000.0], 60.0) <= 1
