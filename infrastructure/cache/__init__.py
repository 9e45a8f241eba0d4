"""Local key/value cache used when the remote store is unreachable."""

from infrastructure.cache.sqlite_cache import SqliteLocalCache

__all__ = ["SqliteLocalCache"]
