"""Achievement catalog implementations."""

from infrastructure.catalog.achievement_catalog import (
    DEFAULT_CATALOG_PATH,
    StaticAchievementCatalog,
    SupabaseAchievementCatalog,
    load_yaml_catalog,
    parse_catalog,
)

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "StaticAchievementCatalog",
    "SupabaseAchievementCatalog",
    "load_yaml_catalog",
    "parse_catalog",
]
