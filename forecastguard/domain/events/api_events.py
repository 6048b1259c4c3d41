"""Domain Events related to upstream calls, resilience and the forecast cache.

Examples include events for when calls are deferred, retried, fail, recover,
or when a cached read degrades to a full fetch.
"""

from dataclasses import dataclass, field
import time
from typing import Optional

@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an attempt is about to be made."""
    upstream: str # e.g., 'openweather'
    attempt_number: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an attempt succeeds."""
    upstream: str
    attempt_number: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallRecovered(DomainEvent):
    """Event triggered when an attempt after the first one succeeds."""
    upstream: str
    attempts: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call fails definitively (non-retryable or exhausted)."""
    upstream: str
    error_kind: str
    error_message: str
    attempts: int
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when an attempt is deferred due to rate limiting."""
    upstream: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed attempt."""
    upstream: str
    attempt_number: int
    delay_seconds: float
    error_kind: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class ReducedFetchFallback(DomainEvent):
    """Event triggered when a cache-assisted fetch degrades to a full fetch."""
    reason: str
    error_type: str
    timestamp: float = field(default_factory=time.time)
