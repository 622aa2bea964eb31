from .supabase_store import SupabaseRecordStore, create_supabase_store

__all__ = [
    "SupabaseRecordStore",
    "create_supabase_store",
]
