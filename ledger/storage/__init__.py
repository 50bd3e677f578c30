"""
Storage Package

Provides the key-value storage interface, local backends and the
repository that maps the ledger aggregate onto storage keys.
"""

from ledger.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from ledger.storage.local import InMemoryStorage, JsonFileStorage
from ledger.storage.repository import LedgerRepository

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Backends
    "InMemoryStorage",
    "JsonFileStorage",
    # Repository
    "LedgerRepository",
]
