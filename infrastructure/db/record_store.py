"""
Supabase Record Store Implementation.

This module implements the RemoteRecordStore protocol using the asynchronous
Supabase client. Every failure other than "no matching row" is raised as
RemoteStoreError so that the persistence gateway can fall back to the local
cache.

Tables (PostgREST):
- user_progress, user_gamification, user_preferences: one row per user_id
- exercise_set_tracking: (user_id, exercise_id) -> data JSONB
- workout_sessions: (user_id, session_id) -> data JSONB
- completed_sessions: append-only workout history
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from application.exceptions import RemoteStoreError

logger = logging.getLogger(__name__)

# PostgREST code for "JSON object requested, multiple (or no) rows returned"
NO_ROWS_CODE = "PGRST116"


class SupabaseRecordStore:
    """
    Supabase implementation of RemoteRecordStore.

    Rows are matched with equality filters; upsert is implemented as an
    update followed by an insert when the update touched no row, so an
    existing row keeps its primary key and created_at.
    """

    def __init__(self, client: AsyncClient):
        """
        Initialize with Supabase client.

        Args:
            client: Async Supabase client instance (injected)
        """
        self._client = client

    async def fetch_one(
        self,
        table: str,
        match: Dict[str, str],
    ) -> Optional[Dict[str, Any]]:
        """Fetch a single row matching every filter, or None."""
        query = self._client.table(table).select("*")
        for column, value in match.items():
            query = query.eq(column, value)

        try:
            result = await query.limit(1).execute()
        except APIError as e:
            if e.code == NO_ROWS_CODE:
                return None
            raise RemoteStoreError(f"Fetch from {table} failed: {e.message}") from e
        except (httpx.HTTPError, OSError) as e:
            raise RemoteStoreError(f"Fetch from {table} failed: {e}") from e

        if result.data:
            return result.data[0]
        return None

    async def upsert(
        self,
        table: str,
        match: Dict[str, str],
        row: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Update the matching row, inserting it when no row exists."""
        update_data = {
            **row,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        query = self._client.table(table).update(update_data)
        for column, value in match.items():
            query = query.eq(column, value)

        try:
            result = await query.execute()
        except APIError as e:
            if e.code != NO_ROWS_CODE:
                raise RemoteStoreError(f"Update of {table} failed: {e.message}") from e
            result = None
        except (httpx.HTTPError, OSError) as e:
            raise RemoteStoreError(f"Update of {table} failed: {e}") from e

        if result is not None and result.data:
            return result.data[0]

        # No row yet for this key
        logger.info(f"No {table} row for {match}, inserting")
        return await self.insert(table, {**match, **row})

    async def fetch_many(
        self,
        table: str,
        match: Dict[str, str],
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every row matching the filters."""
        query = self._client.table(table).select("*")
        for column, value in match.items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await query.execute()
        except APIError as e:
            raise RemoteStoreError(f"Fetch from {table} failed: {e.message}") from e
        except (httpx.HTTPError, OSError) as e:
            raise RemoteStoreError(f"Fetch from {table} failed: {e}") from e

        return result.data or []

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a new row."""
        try:
            result = await self._client.table(table).insert(row).execute()
        except APIError as e:
            raise RemoteStoreError(f"Insert into {table} failed: {e.message}") from e
        except (httpx.HTTPError, OSError) as e:
            raise RemoteStoreError(f"Insert into {table} failed: {e}") from e

        if not result.data:
            raise RemoteStoreError(f"Insert into {table} returned no row")
        return result.data[0]


class UnconfiguredRecordStore:
    """
    Stand-in remote store used when Supabase credentials are not configured.

    Every call reports the remote as unavailable, so the engine runs on the
    local cache alone.
    """

    async def fetch_one(self, table: str, match: Dict[str, str]) -> Optional[Dict[str, Any]]:
        raise RemoteStoreError("Remote store not configured")

    async def upsert(self, table: str, match: Dict[str, str], row: Dict[str, Any]) -> Dict[str, Any]:
        raise RemoteStoreError("Remote store not configured")

    async def fetch_many(
        self,
        table: str,
        match: Dict[str, str],
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raise RemoteStoreError("Remote store not configured")

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        raise RemoteStoreError("Remote store not configured")
