"""Defines common Value Objects used across the resilience and cache contexts.

These objects represent policies, keys and request parameters, ensuring
consistency and validation at construction time.
"""

import math
from dataclasses import dataclass
from typing import Optional

# === Core Value Objects ===

VALID_UNITS = ("metric", "imperial", "standard")
MAX_FORECAST_COUNT = 40 # OpenWeather free tier limit for cnt

# === Retry Context ===

@dataclass(frozen=True)
class RetryPolicy:
    """Value Object representing retry backoff configuration.

    Attributes:
        max_attempts: Total attempts including the first one (>= 1).
        base_delay: Delay in seconds after the first failed attempt (> 0).
        max_delay: Upper bound for the un-jittered delay (>= base_delay).
        jitter_fraction: Relative jitter applied to each delay (0..1).
        attempt_timeout: Per-attempt deadline in seconds, None for no deadline.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter_fraction: float = 0.1
    attempt_timeout: Optional[float] = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be > 0, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        if not 0 <= self.jitter_fraction <= 1:
            raise ValueError(f"jitter_fraction must be within [0, 1], got {self.jitter_fraction}")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError(f"attempt_timeout must be > 0, got {self.attempt_timeout}")

    def base_delay_for(self, attempt: int) -> float:
        """Un-jittered delay after the 0-indexed `attempt`."""
        # Cap the exponent first; 2**attempt overflows floats for large attempts
        if attempt >= 64:
            return self.max_delay
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def delay_for(self, attempt: int, rand: float) -> float:
        """Jittered delay after `attempt`, given a uniform sample `rand` in [0, 1)."""
        delay = self.base_delay_for(attempt)
        jittered = delay * (1 + self.jitter_fraction * (2 * rand - 1))
        return max(0.0, jittered)

# === Cache Context ===

@dataclass(frozen=True)
class LocationKey:
    """The (latitude, longitude, units) triple a cache record is bound to."""
    latitude: float
    longitude: float
    units: str

    COORDINATE_TOLERANCE = 1e-6

    def matches(self, other: "LocationKey") -> bool:
        return (
            math.isclose(self.latitude, other.latitude, rel_tol=0.0, abs_tol=self.COORDINATE_TOLERANCE)
            and math.isclose(self.longitude, other.longitude, rel_tol=0.0, abs_tol=self.COORDINATE_TOLERANCE)
            and self.units.lower() == other.units.lower()
        )

# === Weather Request Context ===

@dataclass(frozen=True)
class ForecastParams:
    """Parameters for a single OpenWeather request."""
    latitude: float
    longitude: float
    units: str = "imperial"
    count: int = 0 # 0 lets the upstream pick its default

    @property
    def location_key(self) -> LocationKey:
        return LocationKey(self.latitude, self.longitude, self.units.lower())


def validate_forecast_params(params: ForecastParams) -> None:
    """Raises ValueError listing every invalid field of `params`."""
    problems = []
    if not -90 <= params.latitude <= 90:
        problems.append(f"latitude must be between -90 and 90, got {params.latitude:.6f}")
    if not -180 <= params.longitude <= 180:
        problems.append(f"longitude must be between -180 and 180, got {params.longitude:.6f}")
    if params.units and params.units.lower() not in VALID_UNITS:
        problems.append(f"units must be one of: {', '.join(VALID_UNITS)}, got '{params.units}'")
    if params.count < 0 or params.count > MAX_FORECAST_COUNT:
        problems.append(f"count must be between 0 and {MAX_FORECAST_COUNT}, got {params.count}")
    if problems:
        raise ValueError(f"validation failed: {'; '.join(problems)}")
