"""
Achievement Catalog Interface (Port).

The catalog is read-only static data injected into the engine, so tests can
substitute fixtures and deployments can choose where the catalog lives.
"""
from typing import List, Optional, Protocol

from domain.models import Achievement


class AchievementCatalog(Protocol):
    """Read-only collection of achievements, in catalog order."""

    async def list_achievements(self) -> List[Achievement]:
        """
        Get every achievement in catalog order.

        The order is stable between calls and is the order unlocks are
        reported in.
        """
        ...

    async def get(self, achievement_id: str) -> Optional[Achievement]:
        """Get a single achievement by id, or None if it is not in the catalog."""
        ...
