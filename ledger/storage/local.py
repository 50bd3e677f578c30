"""
Local Storage Implementations

JsonFileStorage keeps one `<key>.json` file per key in a directory, the
on-disk equivalent of a browser's local storage. InMemoryStorage backs
the tests.

Writes go to a temporary file first and are renamed into place, so a
single key is never half-written. There is still no transaction across
keys: a crash between two writes can leave collections out of step.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from ledger.storage.interface import (
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)


logger = structlog.get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStorage(KeyValueStorageInterface):
    """File-per-key storage under a single directory."""

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._directory,
                prefix=f".{key}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageWriteError(f"Could not write {path}: {e}") from e
        logger.debug("storage_write", key=key, bytes=len(value))

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Could not delete {key}: {e}") from e

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self._directory.glob("*.json"))


class InMemoryStorage(KeyValueStorageInterface):
    """Dictionary-backed storage."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
