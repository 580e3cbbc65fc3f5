"""
Módulo de base de datos.

Provee acceso a Supabase y operaciones CRUD.
"""

from tauschmatch.database.supabase_client import get_supabase_client, SupabaseClient
from tauschmatch.database.repositories import (
    ListingRepository,
    UserRepository,
    SavedListingRepository,
)

__all__ = [
    "get_supabase_client",
    "SupabaseClient",
    "ListingRepository",
    "UserRepository",
    "SavedListingRepository",
]
