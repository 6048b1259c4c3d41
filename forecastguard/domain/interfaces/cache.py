"""Interface for the single-record forecast cache store.

Defines the contract for reading, atomically writing and purging the
persisted daily cache record.
"""

import abc

# Import relevant domain models
from ..models.weather import CacheRecord


class CacheStore(abc.ABC):
    """Abstract Base Class for cache record persistence."""

    @abc.abstractmethod
    def read(self) -> CacheRecord:
        """Loads the stored record.

        Returns:
            The decoded cache record.

        Raises:
            CacheNotFoundError: If no record has been written yet.
            CacheCorruptError: If the stored document cannot be used.
            CacheIOError: If the filesystem refused the read.
        """
        pass

    @abc.abstractmethod
    def write(self, record: CacheRecord) -> None:
        """Replaces the stored record atomically.

        Raises:
            CacheIOError: If the record could not be persisted. The previous
                record, if any, is left intact.
        """
        pass

    @abc.abstractmethod
    def delete(self) -> None:
        """Removes the stored record. A missing record is not an error."""
        pass
