"""Key/value persistence media for :class:`family_finance.storage.FinanceStore`.

The store only needs four primitive operations on string values, so the
medium is abstracted behind :class:`StorageBackend`.  Two implementations
are provided:

* :class:`JsonFileBackend` keeps one ``<key>.json`` file per key in a
  directory.  Writes go to a staging file first and are swapped into place
  with :func:`os.replace`, so a failed write never leaves a half-written
  collection behind.
* :class:`MemoryBackend` keeps everything in a dictionary.  An optional
  ``quota`` (in characters) makes it reject writes the way a full browser
  storage area would, which is handy in tests.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""


class WriteError(StorageError):
    """The persistence medium rejected a write (capacity, permission)."""


class MalformedDataError(StorageError):
    """Persisted or imported data could not be parsed into entities."""


class StorageBackend(ABC):
    """Minimal string key/value medium."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or ``None`` when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            WriteError: If the medium rejects the write.  The previous value
                must still be readable afterwards.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All keys currently stored."""


class MemoryBackend(StorageBackend):
    """Dictionary-backed medium with an optional size quota."""

    def __init__(self, quota: Optional[int] = None) -> None:
        self.quota = quota
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(k) + len(v) for k, v in self._items.items() if k != key)
            if used + len(key) + len(value) > self.quota:
                raise WriteError(f"Storage quota of {self.quota} characters exceeded writing '{key}'")
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class JsonFileBackend(StorageBackend):
    """One JSON file per key inside ``directory``."""

    SUFFIX = ".json"

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def get_path(self, key: str) -> Path:
        return self.directory / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        target = self.get_path(key)
        if not target.exists():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", target, exc)
            return None

    def set(self, key: str, value: str) -> None:
        target = self.get_path(key)
        staging = target.with_name(f".{target.name}.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with staging.open("w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(staging, target)
        except OSError as exc:
            try:
                staging.unlink()
            except OSError:
                pass
            raise WriteError(f"Failed to write {target}: {exc}") from exc

    def remove(self, key: str) -> None:
        target = self.get_path(key)
        if not target.exists():
            return
        try:
            target.unlink()
        except OSError as exc:
            raise WriteError(f"Failed to delete {target}: {exc}") from exc

    def keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(
            path.name[: -len(self.SUFFIX)]
            for path in self.directory.glob(f"*{self.SUFFIX}")
            if not path.name.startswith(".")
        )
