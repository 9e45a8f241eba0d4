"""
Local Cache Interface (Port).

A simple persistent key -> JSON blob store used by the gateway whenever the
remote store is unreachable. Keys are scoped by user id by the caller; the
cache itself knows nothing about record types.
"""
from typing import Optional, Protocol


class LocalCache(Protocol):
    """Abstract interface for the local persistent key/value store."""

    def get(self, key: str) -> Optional[str]:
        """
        Read the blob stored under `key`.

        Returns:
            The JSON text, or None when nothing is stored

        Raises:
            LocalCacheError: The cache could not be read
        """
        ...

    def set(self, key: str, value: str) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Raises:
            LocalCacheError: The cache could not be written
        """
        ...

    def delete(self, key: str) -> bool:
        """
        Remove `key`.

        Returns:
            True if a value was removed, False if the key was absent
        """
        ...
