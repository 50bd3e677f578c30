"""
Abstract Storage Interface

We define an abstract key-value interface for persistence. This allows us to:
1. Keep the ledger core free of any I/O
2. Use in-memory storage for testing
3. Swap the JSON-file backend for something else later

The interface mirrors a browser-style local key-value store: one
serialized document per key, no cross-key transactions.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage.

    Values are serialized strings (JSON documents). Any backend must
    implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the raw value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored string, or None when the key is absent

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value, replacing whatever was there.

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored value could not be read."""
    pass


class StorageWriteError(StorageError):
    """Value could not be written."""
    pass
