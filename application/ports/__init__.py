"""
Storage and catalog interfaces (ports) for the progress engine.

This package defines abstract interfaces that decouple the engine's
business logic from infrastructure (remote database, local cache, catalog
source). Implementations are provided in the infrastructure layer.

Architecture follows the Ports & Adapters (Hexagonal) pattern:
- Ports: Abstract interfaces defined here (what the engine needs)
- Adapters: Concrete implementations in infrastructure/ (how it's provided)

Usage:
    from application.ports import RemoteRecordStore, LocalCache

    class ProgressGateway:
        def __init__(self, remote: RemoteRecordStore, local: LocalCache):
            ...
"""

# Remote persistence
from application.ports.remote_store import RemoteRecordStore

# Local fallback persistence
from application.ports.local_cache import LocalCache

# Static achievement data
from application.ports.achievement_catalog import AchievementCatalog

__all__ = [
    "RemoteRecordStore",
    "LocalCache",
    "AchievementCatalog",
]
