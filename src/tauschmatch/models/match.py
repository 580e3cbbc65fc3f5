"""
Modelos de salida del motor de matching.

MatchResult se calcula en cada request y no se persiste.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tauschmatch.models.listing import Listing

SEMANTIC_FLOOR_SCORE = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MatchFilters(_CamelModel):
    """Filtros opcionales que se empujan a la query del storage."""

    max_rent: Optional[float] = None
    min_rooms: Optional[float] = None
    max_rooms: Optional[float] = None
    districts: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)


class ReasonBucket(_CamelModel):
    """Razones de un sentido del intercambio, separadas por origen."""

    structured: list[str] = Field(default_factory=list)
    semantic: list[str] = Field(default_factory=list)


class ReasonBreakdown(_CamelModel):
    """
    their_apartment: lo que querés vs lo que ellos tienen.
    your_apartment: lo que tenés vs lo que ellos buscan.
    """

    their_apartment: ReasonBucket = Field(default_factory=ReasonBucket)
    your_apartment: ReasonBucket = Field(default_factory=ReasonBucket)


class MatchResult(_CamelModel):
    """Resultado de matching para un par (usuario, listing)."""

    listing: Listing
    score: int = Field(..., ge=0, le=10, description="Score combinado 0-10")
    structured_score: int = Field(..., ge=0, le=10)
    semantic_score: int = Field(SEMANTIC_FLOOR_SCORE, ge=0, le=10)
    reason_breakdown: ReasonBreakdown = Field(default_factory=ReasonBreakdown)

    @property
    def listing_id(self) -> Optional[str]:
        return self.listing.id

    def to_response_dict(self) -> dict:
        """Serialización camelCase para la API."""
        return self.model_dump(mode="json", by_alias=True)
