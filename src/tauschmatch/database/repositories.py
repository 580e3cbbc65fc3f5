"""
Repositorios para operaciones CRUD en Supabase.

Cada repositorio maneja una tabla/entidad específica.
"""

from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from tauschmatch.database.supabase_client import get_supabase_client, SupabaseClient
from tauschmatch.models import (
    Listing,
    MatchFilters,
    SavedListing,
    UserProfile,
    saved_listing_key,
)

logger = structlog.get_logger()


class BaseRepository:
    """Clase base para repositorios."""

    def __init__(self, client: Optional[SupabaseClient] = None, admin: bool = False):
        self._client = client
        self._admin = admin

    @property
    def client(self) -> SupabaseClient:
        # Lazy: construir un repositorio no exige credenciales
        if self._client is None:
            self._client = get_supabase_client(admin=self._admin)
        return self._client


class ListingRepository(BaseRepository):
    """Repositorio de listings scrapeados (solo lectura para el matcher)."""

    TABLE = "listings"
    PAGE_SIZE = 1000

    def _to_listings(self, rows: Iterable[dict]) -> list[Listing]:
        listings = []
        for row in rows:
            try:
                listings.append(Listing.model_validate(row))
            except ValidationError as e:
                logger.warning("Listing inválido en storage", id=row.get("id"), error=str(e))
        return listings

    def search_by_filters(
        self,
        filters: Optional[MatchFilters] = None,
        limit: int = 30,
    ) -> list[Listing]:
        """
        Búsqueda por filtros opcionales.

        Returns:
            Lista de listings que cumplen los filtros
        """
        query = self.client.table(self.TABLE).select("*")

        if filters is not None:
            if filters.max_rent is not None:
                query = query.lte("cold_rent", filters.max_rent)
            if filters.min_rooms is not None:
                query = query.gte("rooms", filters.min_rooms)
            if filters.max_rooms is not None:
                query = query.lte("rooms", filters.max_rooms)
            if filters.districts:
                query = query.in_("district", filters.districts)
            if filters.types:
                query = query.in_("type", filters.types)

        response = query.limit(limit).execute()
        listings = self._to_listings(response.data or [])
        logger.info("Listings obtenidos", count=len(listings), limit=limit)
        return listings

    def get_by_id(self, listing_id: str) -> Optional[Listing]:
        """Obtiene un listing por su ID."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", listing_id)
            .limit(1)
            .execute()
        )
        listings = self._to_listings(response.data or [])
        return listings[0] if listings else None

    def upsert(self, listing: Listing) -> dict:
        """
        Inserta o actualiza un listing usando el link como clave natural.

        Returns:
            El registro insertado/actualizado
        """
        if not listing.link:
            raise ValueError("El listing necesita un link para el upsert")

        data = listing.to_db_dict()
        response = (
            self.client.table(self.TABLE)
            .upsert(data, on_conflict="link")
            .execute()
        )
        logger.info("Listing upserted", link=listing.link)
        return response.data[0] if response.data else {}

    def get_all(self) -> list[Listing]:
        """Trae todos los listings, paginando de a PAGE_SIZE."""
        listings: list[Listing] = []
        start = 0
        while True:
            response = (
                self.client.table(self.TABLE)
                .select("*")
                .range(start, start + self.PAGE_SIZE - 1)
                .execute()
            )
            rows = response.data or []
            listings.extend(self._to_listings(rows))
            if len(rows) < self.PAGE_SIZE:
                break
            start += self.PAGE_SIZE
        return listings

    def delete(self, listing_id: str) -> bool:
        response = self.client.table(self.TABLE).delete().eq("id", listing_id).execute()
        return len(response.data or []) > 0

    @staticmethod
    def find_duplicate_ids(listings: list[Listing]) -> list[str]:
        """
        IDs de listings duplicados por link.

        De cada grupo se conserva uno: el primero con imágenes o, si
        ninguno tiene, el primero.
        """
        by_link: dict[str, list[Listing]] = {}
        for listing in listings:
            if listing.link and listing.id:
                by_link.setdefault(listing.link, []).append(listing)

        duplicate_ids = []
        for group in by_link.values():
            if len(group) < 2:
                continue
            keep = next((l for l in group if l.images), group[0])
            duplicate_ids.extend(l.id for l in group if l is not keep)
        return duplicate_ids

    @staticmethod
    def find_incomplete_ids(listings: list[Listing]) -> list[str]:
        """IDs de listings sin alguno de los campos requeridos."""
        return [l.id for l in listings if l.id and not l.has_required_fields()]


class UserRepository(BaseRepository):
    """Repositorio para usuarios."""

    TABLE = "users"

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Obtiene un usuario por su ID (None si no existe)."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return UserProfile.model_validate(response.data[0])

    def upsert_profile(self, profile: UserProfile) -> dict:
        """Crea o actualiza el perfil completo."""
        response = (
            self.client.table(self.TABLE)
            .upsert(profile.to_db_dict(), on_conflict="id")
            .execute()
        )
        logger.info("Perfil actualizado", user_id=profile.id)
        return response.data[0] if response.data else {}


class SavedListingRepository(BaseRepository):
    """Listings guardados por usuario. Un documento por par (user, listing)."""

    TABLE = "saved_listings"

    def save(self, user_id: str, listing: Listing) -> SavedListing:
        """Guarda (o re-guarda) un listing con un snapshot actual."""
        if not listing.id:
            raise ValueError("El listing necesita un ID para guardarse")

        saved = SavedListing(
            id=saved_listing_key(user_id, listing.id),
            user_id=user_id,
            listing_id=listing.id,
            listing=listing,
        )
        self.client.table(self.TABLE).upsert(saved.to_db_dict(), on_conflict="id").execute()
        logger.info("Listing guardado", user_id=user_id, listing_id=listing.id)
        return saved

    def unsave(self, user_id: str, listing_id: str) -> bool:
        response = (
            self.client.table(self.TABLE)
            .delete()
            .eq("id", saved_listing_key(user_id, listing_id))
            .execute()
        )
        removed = len(response.data or []) > 0
        logger.info("Listing quitado de guardados", user_id=user_id, listing_id=listing_id, removed=removed)
        return removed

    def get_saved_listings(self, user_id: str) -> list[SavedListing]:
        """Guardados del usuario, más recientes primero."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("saved_at", desc=True)
            .execute()
        )
        return [SavedListing.model_validate(row) for row in response.data or []]

    def is_saved(self, user_id: str, listing_id: str) -> bool:
        response = (
            self.client.table(self.TABLE)
            .select("id")
            .eq("id", saved_listing_key(user_id, listing_id))
            .limit(1)
            .execute()
        )
        return len(response.data or []) > 0
