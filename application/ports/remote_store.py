"""
Remote Record Store Interface (Port).

This module defines the abstract interface the persistence gateway uses to
talk to the remote (network) store. Rows are plain dictionaries keyed by
column name; nested structures are stored as JSON columns.

Implementations raise RemoteStoreError for every failure other than
"no matching row", which is reported as None / an empty list.
"""
from typing import Any, Dict, List, Optional, Protocol


class RemoteRecordStore(Protocol):
    """
    Abstract interface for the remote table store.

    All operations are asynchronous: each call is a network round-trip and a
    suspension point for the calling flow.
    """

    async def fetch_one(
        self,
        table: str,
        match: Dict[str, str],
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch a single row whose columns equal every value in `match`.

        Args:
            table: Table name
            match: Column -> value equality filters (always includes user_id)

        Returns:
            The row, or None when no row matches

        Raises:
            RemoteStoreError: The store could not be reached or rejected the query
        """
        ...

    async def upsert(
        self,
        table: str,
        match: Dict[str, str],
        row: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Update the row matching `match`, inserting it when none exists.

        Args:
            table: Table name
            match: Column -> value filters identifying the row
            row: Column values to write

        Returns:
            The stored row as returned by the store

        Raises:
            RemoteStoreError: The update or the insert failed
        """
        ...

    async def fetch_many(
        self,
        table: str,
        match: Dict[str, str],
        *,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every row matching `match`.

        Args:
            table: Table name
            match: Column -> value equality filters
            order_by: Optional column to sort by
            descending: Sort direction when order_by is given
            limit: Maximum rows to return

        Returns:
            Matching rows (possibly empty)

        Raises:
            RemoteStoreError: The store could not be reached or rejected the query
        """
        ...

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new row.

        Returns:
            The stored row as returned by the store

        Raises:
            RemoteStoreError: The insert failed
        """
        ...
