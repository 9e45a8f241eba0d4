"""
Achievement catalog implementations.

- StaticAchievementCatalog: an in-memory list (fixtures, YAML-loaded data)
- load_yaml_catalog: builds a StaticAchievementCatalog from a YAML file
- SupabaseAchievementCatalog: reads the remote `achievements` table once and
  caches it, using an injected fallback catalog when the table is unreachable
"""
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

import httpx
import yaml
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import AsyncClient

from application.ports.achievement_catalog import AchievementCatalog
from domain.models import Achievement

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "achievements.yaml"


class StaticAchievementCatalog:
    """Read-only catalog backed by a fixed list, kept in the given order."""

    def __init__(self, achievements: Iterable[Achievement]):
        self._achievements = list(achievements)
        ids = [a.id for a in self._achievements]
        if len(ids) != len(set(ids)):
            raise ValueError("Achievement ids must be unique within a catalog")
        self._by_id = {a.id: a for a in self._achievements}

    async def list_achievements(self) -> List[Achievement]:
        return list(self._achievements)

    async def get(self, achievement_id: str) -> Optional[Achievement]:
        return self._by_id.get(achievement_id)

    def __len__(self) -> int:
        return len(self._achievements)


def parse_catalog(entries: List[Dict[str, Any]]) -> List[Achievement]:
    """Validate raw catalog entries, preserving their order."""
    return [Achievement.model_validate(entry) for entry in entries]


def load_yaml_catalog(path: Union[str, Path, None] = None) -> StaticAchievementCatalog:
    """
    Load the achievement catalog from a YAML file.

    Args:
        path: YAML file holding a list of achievements; defaults to the
            catalog bundled with the package

    Returns:
        StaticAchievementCatalog in file order
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    entries = yaml.safe_load(catalog_path.read_text(encoding="utf-8")) or []
    catalog = StaticAchievementCatalog(parse_catalog(entries))
    logger.debug(f"Loaded {len(catalog)} achievements from {catalog_path}")
    return catalog


class SupabaseAchievementCatalog:
    """
    Catalog stored in the remote `achievements` table.

    The table is read once per instance; later calls are served from memory.
    If the table cannot be read, the injected fallback catalog is used for
    the lifetime of the instance.
    """

    def __init__(self, client: AsyncClient, fallback: AchievementCatalog):
        """
        Args:
            client: Async Supabase client instance (injected)
            fallback: Catalog used when the table is unreachable or empty
        """
        self._client = client
        self._fallback = fallback
        self._cache: Optional[List[Achievement]] = None

    async def list_achievements(self) -> List[Achievement]:
        if self._cache is None:
            self._cache = await self._load()
        return list(self._cache)

    async def get(self, achievement_id: str) -> Optional[Achievement]:
        for achievement in await self.list_achievements():
            if achievement.id == achievement_id:
                return achievement
        return None

    async def _load(self) -> List[Achievement]:
        try:
            result = await self._client.table("achievements") \
                .select("*") \
                .order("sort_order") \
                .execute()
            rows = result.data or []
            if rows:
                return parse_catalog(rows)
            logger.warning("Remote achievements table is empty, using fallback catalog")
        except (APIError, httpx.HTTPError, OSError) as e:
            logger.warning(f"Could not fetch achievements from database, using fallback: {e}")
        except ValidationError as e:
            logger.warning(f"Malformed achievement rows in database, using fallback: {e}")
        return await self._fallback.list_achievements()
