"""
Infrastructure Database Layer.

Supabase-backed implementation of the RemoteRecordStore port.

Usage:
    from supabase import acreate_client
    from infrastructure.db import SupabaseRecordStore

    client = await acreate_client(url, key)
    store = SupabaseRecordStore(client)
"""

from infrastructure.db.record_store import SupabaseRecordStore, UnconfiguredRecordStore

__all__ = [
    "SupabaseRecordStore",
    "UnconfiguredRecordStore",
]
