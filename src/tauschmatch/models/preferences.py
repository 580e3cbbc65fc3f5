"""
Preferencias extraídas por IA del texto libre del usuario.

Son efímeras: se generan una vez por request y solo alimentan los
bullets de "sabor" del generador de razones. No afectan el score.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tauschmatch.models.fields import parse_optional_float
from tauschmatch.models.user import LookingFor


class ExtractedPreferences(BaseModel):
    """Flags de estilo de vida + metas numéricas opcionales."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    quiet: bool = False
    near_parks: bool = False
    family_friendly: bool = False
    pet_friendly: bool = False
    near_public_transport: bool = False
    near_shopping: bool = False
    near_restaurants: bool = False

    budget: Optional[float] = None
    min_rooms: Optional[float] = None
    max_rent: Optional[float] = None

    preferred_districts: list[str] = Field(default_factory=list)
    lifestyle: list[str] = Field(default_factory=list)

    @field_validator("budget", "min_rooms", "max_rent", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> Optional[float]:
        return parse_optional_float(value)

    @field_validator("preferred_districts", "lifestyle", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(v).strip() for v in value if str(v).strip()]

    @classmethod
    def from_looking_for(cls, looking_for: LookingFor) -> "ExtractedPreferences":
        """Fallback determinístico armado solo con los campos estructurados."""
        return cls(
            pet_friendly=looking_for.pets_allowed,
            budget=looking_for.max_cold_rent,
            min_rooms=looking_for.min_rooms,
            max_rent=looking_for.max_cold_rent,
            preferred_districts=list(looking_for.districts),
        )
