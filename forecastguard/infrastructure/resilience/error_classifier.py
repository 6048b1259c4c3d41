"""Maps arbitrary upstream failures onto the retryable/terminal error taxonomy.

Typed errors (asyncio, httpx, socket, UpstreamHTTPError) are inspected first.
Matching on the error message is kept only as a last resort for opaque
third-party exceptions that expose nothing but text.
"""

import asyncio
import errno
import re
import socket
from typing import Optional

import httpx

from forecastguard.domain.models.errors import (
    ClassifiedError,
    ErrorKind,
    FinalError,
    OperationCancelledError,
    UpstreamHTTPError,
)

SERVER_ERROR_STATUSES = frozenset({500, 502, 503, 504})
AUTH_ERROR_STATUSES = frozenset({401, 403})

_UNREACHABLE_ERRNOS = frozenset({
    errno.ECONNREFUSED,
    errno.ECONNRESET,
    errno.ECONNABORTED,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    errno.ENETDOWN,
})

# --- Last-resort message patterns, in precedence order ---
_TIMEOUT_PATTERN = re.compile(r"timed? ?out|deadline exceeded")
_RATE_LIMIT_PATTERN = re.compile(r"rate limit|too many requests|\b429\b")
_SERVER_PATTERN = re.compile(r"\b50[0234]\b|internal server error|bad gateway|service unavailable")
_AUTH_PATTERN = re.compile(r"\b40[13]\b|unauthori[sz]ed|forbidden|invalid api key")
_INVALID_PATTERN = re.compile(r"\b400\b|invalid request|bad request")
_NETWORK_PATTERN = re.compile(
    r"connection refused|connection reset|network (is )?unreachable|no route to host"
    r"|temporary failure|name resolution|no such host|nodename nor servname"
)


def classify(err: BaseException) -> ClassifiedError:
    """Classifies a failure. First match wins.

    Order: cancellation, timeout, HTTP status, connection-level failure,
    message patterns, unknown. Timeout precedes status inspection because a
    timed-out request may never have reached the server.
    """
    if isinstance(err, FinalError):
        return err.classified

    message = str(err) or type(err).__name__

    if isinstance(err, (asyncio.CancelledError, OperationCancelledError)):
        return ClassifiedError(ErrorKind.CANCELLED, message, cause=err)

    if isinstance(err, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return ClassifiedError(ErrorKind.TIMEOUT, message, cause=err)

    status = _extract_status_code(err)
    if status is not None:
        return ClassifiedError(_kind_for_status(status), message, status_code=status, cause=err)

    if _is_connection_failure(err):
        return ClassifiedError(ErrorKind.NETWORK_ERROR, message, cause=err)

    return _classify_by_message(err, message)


def _kind_for_status(status: int) -> ErrorKind:
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in SERVER_ERROR_STATUSES:
        return ErrorKind.SERVER_ERROR
    if status in AUTH_ERROR_STATUSES:
        return ErrorKind.AUTH_ERROR
    if status == 400:
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.UNKNOWN


def _extract_status_code(err: BaseException) -> Optional[int]:
    """Pulls an HTTP status out of the error types that carry one."""
    if isinstance(err, UpstreamHTTPError):
        return err.status_code
    if isinstance(err, httpx.HTTPStatusError):
        return err.response.status_code
    # SDK errors (openai, anthropic, ...) expose a status_code attribute
    status = getattr(err, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def _is_connection_failure(err: BaseException) -> bool:
    if isinstance(err, (httpx.ConnectError, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(err, (ConnectionError, socket.gaierror)):
        return True
    if isinstance(err, OSError) and err.errno in _UNREACHABLE_ERRNOS:
        return True
    return False


def _classify_by_message(err: BaseException, message: str) -> ClassifiedError:
    """Fallback for opaque errors: pattern matching on the lowercased message."""
    text = message.lower()
    if _TIMEOUT_PATTERN.search(text):
        return ClassifiedError(ErrorKind.TIMEOUT, message, cause=err)
    if _RATE_LIMIT_PATTERN.search(text):
        return ClassifiedError(ErrorKind.RATE_LIMITED, message, status_code=429, cause=err)
    match = _SERVER_PATTERN.search(text)
    if match:
        return ClassifiedError(ErrorKind.SERVER_ERROR, message, status_code=_code_in(match.group(0)), cause=err)
    match = _AUTH_PATTERN.search(text)
    if match:
        return ClassifiedError(ErrorKind.AUTH_ERROR, message, status_code=_code_in(match.group(0)), cause=err)
    match = _INVALID_PATTERN.search(text)
    if match:
        return ClassifiedError(ErrorKind.INVALID_REQUEST, message, status_code=_code_in(match.group(0)), cause=err)
    if _NETWORK_PATTERN.search(text):
        return ClassifiedError(ErrorKind.NETWORK_ERROR, message, cause=err)
    return ClassifiedError(ErrorKind.UNKNOWN, message, cause=err)


def _code_in(token: str) -> Optional[int]:
    return int(token) if token.isdigit() else None
