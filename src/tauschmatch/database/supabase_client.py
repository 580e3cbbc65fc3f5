"""
Cliente de Supabase.

Tres tablas: listings (scrapeados, solo lectura para el matcher),
users y saved_listings. El cliente se cachea por proceso.
"""

from functools import lru_cache
from typing import Optional

import structlog
from supabase import create_client, Client

from tauschmatch.config import Settings, get_settings

logger = structlog.get_logger()


class SupabaseClient:
    """Wrapper del cliente de Supabase."""

    def __init__(self, client: Client, admin: bool = False):
        self._client = client
        self.admin = admin

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, admin: bool = False) -> "SupabaseClient":
        """
        Crea el cliente desde la configuración.

        Args:
            admin: usar la service key (borrados de los scripts de limpieza)

        Raises:
            ValueError: Si faltan SUPABASE_URL o la key correspondiente
        """
        settings = settings or get_settings()
        key = settings.supabase_key
        if admin and settings.supabase_service_key:
            key = settings.supabase_service_key

        if not settings.supabase_url or not key:
            raise ValueError(
                "SUPABASE_URL y SUPABASE_KEY son requeridos. "
                "Configura las variables de entorno."
            )

        logger.info("Cliente de Supabase inicializado", url=settings.supabase_url, admin=admin)
        return cls(create_client(settings.supabase_url, key), admin=admin)

    @property
    def client(self) -> Client:
        return self._client

    def table(self, name: str):
        """Query builder de una tabla."""
        return self._client.table(name)


@lru_cache
def get_supabase_client(admin: bool = False) -> SupabaseClient:
    """Cliente cacheado (uno para anon key y otro para service key)."""
    return SupabaseClient.from_settings(admin=admin)
