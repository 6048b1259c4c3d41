"""forecastguard: resilient client layer for rate-limited upstream HTTP services.

Provides a sliding-window rate limiter, a retry executor with exponential
backoff and jitter, an error classifier, and a day-scoped forecast cache.
"""

__version__ = "0.1.0"
