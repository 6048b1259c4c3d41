"""File-backed implementation of the CacheStore interface.

Persists a single CacheRecord as a YAML document. Writes go to a temporary
file in the same directory which is then renamed over the destination, so a
reader never observes a partially written record.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml

from forecastguard.domain.interfaces.cache import CacheStore
from forecastguard.domain.models.errors import (
    CacheCorruptError,
    CacheIOError,
    CacheNotFoundError,
)
from forecastguard.domain.models.weather import CacheRecord

TEMP_SUFFIX = ".tmp"


class FileCacheStore(CacheStore):
    """Single-record YAML cache file with atomic replace-on-write."""

    def __init__(self, file_path: Union[str, Path], logger: Optional[logging.Logger] = None):
        # Ensure file_path is a Path object for cross-platform compatibility
        self.file_path = Path(file_path)
        self.logger = logger or logging.getLogger(__name__)

    @property
    def temp_path(self) -> Path:
        return self.file_path.with_name(self.file_path.name + TEMP_SUFFIX)

    def exists(self) -> bool:
        return self.file_path.is_file()

    def read(self) -> CacheRecord:
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                document = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise CacheNotFoundError(f"cache file does not exist: {self.file_path}") from e
        except yaml.YAMLError as e:
            raise CacheCorruptError(f"failed to parse cache file {self.file_path}: {e}") from e
        except UnicodeDecodeError as e:
            raise CacheCorruptError(f"cache file {self.file_path} is not valid UTF-8") from e
        except OSError as e:
            raise CacheIOError(f"failed to read cache file {self.file_path}: {e}") from e

        record = CacheRecord.from_dict(document)
        self.logger.debug(f"Cache loaded: created={record.created_on_date}, location={record.location}")
        return record

    def write(self, record: CacheRecord) -> None:
        temp_path = self.temp_path
        try:
            content = yaml.safe_dump(record.to_dict(), sort_keys=False, default_flow_style=False)
        except yaml.YAMLError as e:
            raise CacheIOError(f"failed to serialise cache record: {e}") from e

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            # os.replace is atomic on both POSIX and Windows
            os.replace(temp_path, self.file_path)
        except OSError as e:
            self._discard_temp()
            raise CacheIOError(f"failed to write cache file {self.file_path}: {e}") from e

        self.logger.debug(
            f"Weather cache saved: created={record.created_on_date}, location={record.location}, "
            f"high={record.stable.temp_high:.1f}, low={record.stable.temp_low:.1f}"
        )

    def delete(self) -> None:
        try:
            self.file_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheIOError(f"failed to delete cache file {self.file_path}: {e}") from e
        self._discard_temp()
        self.logger.info(f"Cache file deleted: {self.file_path}")

    def _discard_temp(self) -> None:
        try:
            self.temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Failed to remove temporary cache file {self.temp_path}: {e}")
