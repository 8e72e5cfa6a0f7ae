"""
Adapters layer - Booking store implementations (Supabase, in-memory).
"""

from .memory_store import InMemoryShopData
from .supabase_store import SupabaseBookingStore

__all__ = ["InMemoryShopData", "SupabaseBookingStore"]
