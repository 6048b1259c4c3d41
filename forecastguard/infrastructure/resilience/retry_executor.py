"""Service for executing upstream calls with rate limiting and automatic retries.

Implements exponential backoff with jitter for transient errors (timeouts,
429, 5xx, connection failures). Non-retryable errors surface after the
attempt that produced them; exhausting every attempt surfaces as a distinct
RetriesExhaustedError so callers can tell "service down" from "request wrong".
"""

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from forecastguard.domain.events.api_events import (
    ApiCallDeferred,
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallRecovered,
    ApiCallSucceeded,
    DomainEvent,
    RetryScheduled,
)
from forecastguard.domain.interfaces.clock import Clock
from forecastguard.domain.models.common import RetryPolicy
from forecastguard.domain.models.errors import (
    ClassifiedError,
    ErrorKind,
    NonRetryableError,
    OperationCancelledError,
    RetriesExhaustedError,
)
from forecastguard.infrastructure.resilience.error_classifier import classify
from forecastguard.infrastructure.resilience.rate_limiter import RateLimiter
from forecastguard.infrastructure.time.system_clock import DEFAULT_CLOCK

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Classifier = Callable[[BaseException], ClassifiedError]


class RetryExecutor:
    """Drives repeated attempts of an idempotent operation for one upstream."""

    def __init__(
        self,
        policy: RetryPolicy,
        rate_limiter: RateLimiter,
        classifier: Classifier = classify,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
        name: str = "upstream",
        rand: Callable[[], float] = random.random,
    ):
        """Initializes the RetryExecutor.

        Args:
            policy: Attempt count, backoff bounds, jitter and per-attempt deadline.
            rate_limiter: Limiter consulted before every attempt.
            classifier: Maps a raised error to a ClassifiedError.
            clock: Time source for backoff sleeps; the system clock if None.
            logger: Logger for attempt outcomes; the module logger if None.
            name: Upstream name used in logs and events.
            rand: Uniform [0, 1) sampler used for jitter.
        """
        self.policy = policy
        self.rate_limiter = rate_limiter
        self.classifier = classifier
        self.clock = clock or DEFAULT_CLOCK
        self.logger = logger or logging.getLogger(__name__)
        self.name = name
        self.rand = rand

        self.logger.info(
            f"RetryExecutor initialized for '{name}': max_attempts={policy.max_attempts}, "
            f"base_delay={policy.base_delay}s, max_delay={policy.max_delay}s, "
            f"jitter={policy.jitter_fraction}"
        )

    def _dispatch(self, event: DomainEvent) -> None:
        self.logger.debug(f"EVENT: {event}")

    def backoff_delay(self, attempt: int) -> float:
        """Jittered delay to wait after the failed 0-indexed `attempt`."""
        return self.policy.delay_for(attempt, self.rand())

    async def _invoke(self, operation: Operation) -> Any:
        if self.policy.attempt_timeout is None:
            return await operation()
        return await asyncio.wait_for(operation(), timeout=self.policy.attempt_timeout)

    async def run(self, operation: Operation, cancel_event: Optional[asyncio.Event] = None) -> Any:
        """Executes `operation` with rate limiting and retries.

        Args:
            operation: Zero-argument callable returning an awaitable; one call is
                one attempt and it must be safe to repeat.
            cancel_event: Optional caller cancellation signal, honoured before
                each attempt and during the rate-limit and backoff waits.

        Returns:
            The value produced by the first successful attempt.

        Raises:
            OperationCancelledError: If `cancel_event` fired.
            NonRetryableError: On the first non-retryable failure.
            RetriesExhaustedError: If every attempt failed with a retryable error.
        """
        max_attempts = self.policy.max_attempts

        for attempt in range(max_attempts):
            # 1. Wait for rate limit permission
            if cancel_event is not None and cancel_event.is_set():
                raise self._cancelled(attempt)
            wait_duration = self.rate_limiter.get_wait_time()
            if wait_duration > 0:
                self._dispatch(ApiCallDeferred(upstream=self.name, wait_time_seconds=wait_duration))
            if not await self.rate_limiter.admit(cancel_event):
                raise self._cancelled(attempt)

            # 2. Execute the attempt
            self._dispatch(ApiCallInitiated(upstream=self.name, attempt_number=attempt + 1))
            start_time = time.perf_counter()
            try:
                result = await self._invoke(operation)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                classified = self.classifier(e)
            else:
                latency_ms = (time.perf_counter() - start_time) * 1000
                self._dispatch(ApiCallSucceeded(upstream=self.name, attempt_number=attempt + 1, latency_ms=latency_ms))
                if attempt > 0:
                    self.logger.info(f"{self.name} request recovered on attempt {attempt + 1}/{max_attempts}.")
                    self._dispatch(ApiCallRecovered(upstream=self.name, attempts=attempt + 1))
                return result

            # 3. Decide whether to retry
            attempts_made = attempt + 1
            if classified.kind is ErrorKind.CANCELLED:
                self._report_failure(classified, attempts_made)
                raise OperationCancelledError(classified, attempts_made) from classified.cause
            if not classified.retryable:
                self.logger.error(
                    f"Non-retryable error calling {self.name} on attempt {attempts_made}: {classified}"
                )
                self._report_failure(classified, attempts_made)
                raise NonRetryableError(classified, attempts_made) from classified.cause
            if attempts_made == max_attempts:
                self.logger.error(
                    f"Max attempts ({max_attempts}) reached for {self.name}. Last error: {classified}"
                )
                self._report_failure(classified, attempts_made)
                raise RetriesExhaustedError(classified, attempts_made) from classified.cause

            delay = self.backoff_delay(attempt)
            self.logger.warning(
                f"Retryable error calling {self.name} on attempt {attempts_made}/{max_attempts}: "
                f"{classified}. Waiting {delay:.2f}s..."
            )
            self._dispatch(RetryScheduled(
                upstream=self.name,
                attempt_number=attempts_made,
                delay_seconds=delay,
                error_kind=classified.kind.value,
            ))
            if not await self.clock.sleep(delay, cancel_event):
                raise self._cancelled(attempts_made)

        # range() always exits through return or raise above
        raise AssertionError("unreachable")

    def _cancelled(self, attempts_made: int) -> OperationCancelledError:
        self.logger.info(f"{self.name} request cancelled after {attempts_made} attempt(s).")
        classified = ClassifiedError(ErrorKind.CANCELLED, "cancelled by caller")
        self._report_failure(classified, attempts_made)
        return OperationCancelledError(classified, attempts_made)

    def _report_failure(self, classified: ClassifiedError, attempts_made: int) -> None:
        self._dispatch(ApiCallFailed(
            upstream=self.name,
            error_kind=classified.kind.value,
            error_message=classified.message,
            attempts=attempts_made,
            status_code=classified.status_code,
        ))
