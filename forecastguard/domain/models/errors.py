"""Error taxonomy shared by the resilience layer and the forecast cache.

Failures from upstream operations are mapped onto a fixed set of kinds.
Whether a kind is retryable is a property of the kind itself and is never
overridden on individual errors.
"""

import enum
from dataclasses import dataclass
from typing import Optional


class ErrorKind(enum.Enum):
    """Category of a failed upstream attempt."""

    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    AUTH_ERROR = "auth_error"
    INVALID_REQUEST = "invalid_request"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = frozenset({
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMITED,
    ErrorKind.SERVER_ERROR,
    ErrorKind.NETWORK_ERROR,
})


@dataclass(frozen=True)
class ClassifiedError:
    """A failure reduced to its kind, plus the HTTP status when one was seen."""

    kind: ErrorKind
    message: str = ""
    status_code: Optional[int] = None
    cause: Optional[BaseException] = None

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} (HTTP {self.status_code}): {self.message}"
        return f"{self.kind.value}: {self.message}"


# --- Upstream errors raised by operation closures ---

class UpstreamHTTPError(Exception):
    """Raised by an operation when the upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str, upstream: str = "upstream"):
        self.status_code = status_code
        self.message = message
        self.upstream = upstream
        super().__init__(f"{upstream} API error (HTTP {status_code}): {message}")


# --- Terminal errors raised by the retry executor ---

class FinalError(Exception):
    """Terminal outcome of a retried operation.

    Attributes:
        classified: The classification of the last failure.
        attempts: Number of attempts actually made (0 if cancelled before the first).
    """

    def __init__(self, classified: ClassifiedError, attempts: int):
        self.classified = classified
        self.attempts = attempts
        super().__init__(self._describe())

    @property
    def kind(self) -> ErrorKind:
        return self.classified.kind

    def _describe(self) -> str:
        return f"Request failed after {self.attempts} attempt(s): {self.classified}"


class NonRetryableError(FinalError):
    """The request itself is wrong (or was cancelled); retrying would not help."""


class OperationCancelledError(NonRetryableError):
    """The caller's cancellation signal fired before or between attempts."""

    def _describe(self) -> str:
        return f"Request cancelled after {self.attempts} attempt(s)"


class RetriesExhaustedError(FinalError):
    """Every attempt failed with a retryable error; the service looks down."""

    def _describe(self) -> str:
        return f"Max retries exceeded after {self.attempts} attempt(s). Last error: {self.classified}"


# --- Cache errors ---

class CacheError(Exception):
    """Base class for cache store failures. Never fatal to a fetch."""


class CacheNotFoundError(CacheError):
    """No cache file exists yet."""


class CacheCorruptError(CacheError):
    """The cache file exists but cannot be used (bad document or schema)."""


class CacheIOError(CacheError):
    """The filesystem refused a read, write, rename or delete."""


class MergeError(ValueError):
    """Cached stable fields and fresh live fields could not be combined."""
