"""Adapters - I/O implementations of ports."""

from .file_store import FileRecordStore
from .supabase_rest import SupabaseRecordStore

__all__ = [
    "FileRecordStore",
    "SupabaseRecordStore",
]
