"""
Modelo de Listing

Un anuncio de intercambio scrapeado: la vivienda que el autor ofrece
(campos estructurados + descripción) y lo que busca a cambio
(texto libre y, a veces, search_criteria estructurado).

Para el motor de matching un listing es de solo lectura.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tauschmatch.config import LISTING_REQUIRED_FIELDS
from tauschmatch.models.fields import parse_bool, parse_optional_float


class SearchCriteria(BaseModel):
    """Criterios de búsqueda estructurados que algunos anuncios exponen."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    districts: list[str] = Field(default_factory=list)
    max_cold_rent: Optional[float] = None
    min_rooms: Optional[float] = None
    min_square_meters: Optional[float] = None
    pets_allowed: Optional[bool] = None
    balcony: Optional[bool] = None

    @field_validator("max_cold_rent", "min_rooms", "min_square_meters", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> Optional[float]:
        return parse_optional_float(value)

    @field_validator("districts", mode="before")
    @classmethod
    def _clean_districts(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(d).strip() for d in value if str(d).strip()]

    def is_empty(self) -> bool:
        return (
            not self.districts
            and self.max_cold_rent is None
            and self.min_rooms is None
            and self.min_square_meters is None
            and self.pets_allowed is None
            and self.balcony is None
        )


class Listing(BaseModel):
    """
    Anuncio de intercambio de vivienda.

    El link es la clave natural (deduplicación). Los campos requeridos
    se validan upstream; acá quedan opcionales para que el scorer tolere
    datos incompletos sin romperse.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: Optional[str] = Field(None, description="ID asignado por el storage")
    link: Optional[str] = Field(None, description="URL del anuncio (clave natural)")
    title: Optional[str] = None

    district: Optional[str] = None
    type: Optional[str] = None
    address: Optional[str] = None

    cold_rent: Optional[float] = Field(None, description="Kaltmiete en EUR")
    extra_costs: Optional[float] = None
    deposit: Optional[float] = None
    rooms: Optional[float] = None
    square_meters: Optional[float] = None
    floor: Optional[float] = None

    pets_allowed: bool = False
    balcony_or_terrace: bool = False

    # Texto libre: qué ofrecen / qué buscan
    description: str = Field(
        default="",
        validation_alias=AliasChoices("description", "offeredDescription", "offered_description"),
        description="Descripción de la vivienda ofrecida",
    )
    looking_for_description: str = Field(
        default="",
        validation_alias=AliasChoices("lookingForDescription", "looking_for_description", "lookingFor"),
        description="Qué busca el autor a cambio",
    )

    features: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    search_criteria: Optional[SearchCriteria] = None

    @field_validator(
        "cold_rent", "extra_costs", "deposit", "rooms", "square_meters", "floor",
        mode="before",
    )
    @classmethod
    def _parse_numbers(cls, value: Any) -> Optional[float]:
        return parse_optional_float(value)

    @field_validator("pets_allowed", "balcony_or_terrace", mode="before")
    @classmethod
    def _parse_flags(cls, value: Any) -> bool:
        return parse_bool(value)

    @field_validator("description", "looking_for_description", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("features", "images", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> list:
        return [v for v in (value or []) if v]

    def has_required_fields(self) -> bool:
        """True si el listing tiene los siete campos que exige el matcher."""
        for field_name in LISTING_REQUIRED_FIELDS:
            value = getattr(self, field_name)
            if value is None or value == "":
                return False
        return True

    @property
    def has_free_text(self) -> bool:
        return bool(self.description.strip() or self.looking_for_description.strip())

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        return self.model_dump(mode="json", exclude={"id"}, exclude_none=True)
