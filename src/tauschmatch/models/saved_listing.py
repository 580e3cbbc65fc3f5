"""
Relación usuario -> listing guardado.

Independiente del motor de scoring: la UI decide qué guardar.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tauschmatch.models.listing import Listing


def saved_listing_key(user_id: str, listing_id: str) -> str:
    """Un documento por par, así guardar dos veces no duplica."""
    return f"{user_id}_{listing_id}"


class SavedListing(BaseModel):
    """Listing guardado con snapshot del anuncio al momento de guardar."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    user_id: str
    listing_id: str
    listing: Listing
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        return {
            "id": saved_listing_key(self.user_id, self.listing_id),
            "user_id": self.user_id,
            "listing_id": self.listing_id,
            "listing": self.listing.model_dump(mode="json", by_alias=True),
            "saved_at": self.saved_at.isoformat(),
        }
