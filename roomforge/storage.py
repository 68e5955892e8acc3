"""
Key/value persistence backends.

The room cache and the biome registry persist string blobs through the
PersistentStore interface. Backends never raise for storage failures; they
report them as a StorageResult so callers can decide how to degrade.

Two backends are included:
1. InMemoryStore - dict-based, lost on exit (tests, throwaway sessions)
2. JsonFileStore - one file per key under a directory (survives reloads)

Both accept an optional byte quota to mimic browser storage limits.
"""

import errno
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, Optional, Union
from urllib.parse import quote

# errno values that mean "the disk (or the user's share of it) is full"
_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class StorageError(Enum):
    """Why a storage operation failed."""

    QUOTA_EXCEEDED = auto()
    IO_ERROR = auto()
    CORRUPT = auto()


@dataclass(frozen=True)
class StorageResult:
    """
    Outcome of a storage operation.

    For reads, `value` is None when the key is missing; a missing key is
    still a successful read.
    """

    ok: bool
    value: Optional[str] = None
    error: Optional[StorageError] = None
    detail: str = ""

    @classmethod
    def success(cls, value: Optional[str] = None) -> "StorageResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: StorageError, detail: str = "") -> "StorageResult":
        return cls(ok=False, error=error, detail=detail)

    @property
    def quota_exceeded(self) -> bool:
        return self.error == StorageError.QUOTA_EXCEEDED


class PersistentStore(ABC):
    """Abstract string-keyed store for string values."""

    @abstractmethod
    def get(self, key: str) -> StorageResult:
        """Read the value stored under key."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> StorageResult:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    def remove(self, key: str) -> StorageResult:
        """Delete key. Removing a missing key succeeds."""
        pass


class InMemoryStore(PersistentStore):
    """Dict-backed store. Data is lost when the process exits."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self._data: Dict[str, str] = {}
        self.quota_bytes: Optional[int] = quota_bytes

    def _used_bytes(self, excluding: Optional[str] = None) -> int:
        return sum(
            len(key.encode("utf-8")) + len(value.encode("utf-8"))
            for key, value in self._data.items()
            if key != excluding
        )

    def get(self, key: str) -> StorageResult:
        return StorageResult.success(self._data.get(key))

    def set(self, key: str, value: str) -> StorageResult:
        if self.quota_bytes is not None:
            needed = self._used_bytes(excluding=key) + len(key.encode("utf-8")) + len(
                value.encode("utf-8")
            )
            if needed > self.quota_bytes:
                return StorageResult.failure(
                    StorageError.QUOTA_EXCEEDED,
                    f"{needed} bytes exceeds quota of {self.quota_bytes}",
                )
        self._data[key] = value
        return StorageResult.success()

    def remove(self, key: str) -> StorageResult:
        self._data.pop(key, None)
        return StorageResult.success()

    def keys(self) -> List[str]:
        return sorted(self._data.keys())


class JsonFileStore(PersistentStore):
    """
    Stores each key as a JSON file under a directory.

    Values are written as given (callers store JSON text). Writes go to a
    temporary file first and are moved into place, so a failed write never
    leaves a truncated blob behind.
    """

    def __init__(self, directory: Union[str, Path], quota_bytes: Optional[int] = None) -> None:
        self.directory: Path = Path(directory)
        self.quota_bytes: Optional[int] = quota_bytes

    def _path_for(self, key: str) -> Path:
        # Reversible encoding: distinct keys never share a file
        return self.directory / f"{quote(key, safe='')}.json"

    def _used_bytes(self, excluding: Path) -> int:
        if not self.directory.exists():
            return 0
        return sum(
            path.stat().st_size
            for path in self.directory.glob("*.json")
            if path != excluding
        )

    def get(self, key: str) -> StorageResult:
        path = self._path_for(key)
        try:
            return StorageResult.success(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return StorageResult.success(None)
        except UnicodeDecodeError as e:
            return StorageResult.failure(StorageError.CORRUPT, str(e))
        except OSError as e:
            print(f"[JsonFileStore] Failed to read {path}: {e}", file=sys.stderr)
            return StorageResult.failure(StorageError.IO_ERROR, str(e))

    def set(self, key: str, value: str) -> StorageResult:
        path = self._path_for(key)
        encoded = value.encode("utf-8")

        if self.quota_bytes is not None:
            needed = self._used_bytes(excluding=path) + len(encoded)
            if needed > self.quota_bytes:
                return StorageResult.failure(
                    StorageError.QUOTA_EXCEEDED,
                    f"{needed} bytes exceeds quota of {self.quota_bytes}",
                )

        tmp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(encoded)
            tmp_path.replace(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            if e.errno in _QUOTA_ERRNOS:
                return StorageResult.failure(StorageError.QUOTA_EXCEEDED, str(e))
            print(f"[JsonFileStore] Failed to write {path}: {e}", file=sys.stderr)
            return StorageResult.failure(StorageError.IO_ERROR, str(e))
        return StorageResult.success()

    def remove(self, key: str) -> StorageResult:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            return StorageResult.failure(StorageError.IO_ERROR, str(e))
        return StorageResult.success()
