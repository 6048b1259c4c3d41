"""Interface for presenting results to the user.

Defines the contract for displaying weather reports, cache state, errors,
warnings and informational messages, allowing different UI implementations.
"""

import abc
from typing import Any

from forecastguard.domain.models.weather import CacheRecord, TodayWeather

class UserInterface(abc.ABC):
    """Abstract Base Class for user-facing output."""

    @abc.abstractmethod
    def display_weather(self, weather: TodayWeather, **kwargs: Any) -> None:
        """Displays today's weather report."""
        pass

    @abc.abstractmethod
    def display_cache_record(self, record: CacheRecord, **kwargs: Any) -> None:
        """Displays the contents of the forecast cache."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
