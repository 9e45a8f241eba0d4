"""
Infrastructure Layer for the progress engine.

This package contains concrete implementations of the application ports:
- db/: Supabase remote record store
- cache/: SQLite local key/value cache
- catalog/: achievement catalogs (bundled YAML file or remote table)
"""

from infrastructure.cache import SqliteLocalCache
from infrastructure.catalog import (
    StaticAchievementCatalog,
    SupabaseAchievementCatalog,
    load_yaml_catalog,
)
from infrastructure.db import SupabaseRecordStore, UnconfiguredRecordStore

__all__ = [
    "SqliteLocalCache",
    "StaticAchievementCatalog",
    "SupabaseAchievementCatalog",
    "load_yaml_catalog",
    "SupabaseRecordStore",
    "UnconfiguredRecordStore",
]
