"""
Modelo de Usuario

Cada usuario describe la vivienda que ofrece (my_apartment) y la que
busca (looking_for). Los campos numéricos llegan como texto desde los
formularios y se parsean acá, una única vez.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tauschmatch.models.fields import parse_bool, parse_optional_float


class OfferedApartment(BaseModel):
    """La vivienda que el usuario tiene y ofrece para el intercambio."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Optional[str] = Field(None, description="Wohnung, WG-Zimmer, Haus...")
    rooms: Optional[float] = Field(None, description="Cantidad de habitaciones")
    square_meters: Optional[float] = Field(None, description="Superficie en m²")
    cold_rent: Optional[float] = Field(None, description="Kaltmiete en EUR")
    floor: Optional[str] = Field(None, description="Piso (texto libre)")
    balcony: bool = False
    pets_allowed: bool = False

    # Dirección
    street: Optional[str] = None
    number: Optional[str] = None
    zipcode: Optional[str] = None
    city: Optional[str] = None

    description: str = Field(default="", description="Texto libre: qué ofrezco")

    @field_validator("rooms", "square_meters", "cold_rent", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> Optional[float]:
        return parse_optional_float(value)

    @field_validator("balcony", "pets_allowed", mode="before")
    @classmethod
    def _parse_flags(cls, value: Any) -> bool:
        return parse_bool(value)

    @field_validator("floor", mode="before")
    @classmethod
    def _floor_as_text(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("description", mode="before")
    @classmethod
    def _description_as_text(cls, value: Any) -> str:
        return value or ""

    @property
    def address(self) -> str:
        """Dirección legible: 'Oranienstraße 12, 10999 Berlin'."""
        street = " ".join(p for p in (self.street, self.number) if p)
        city = " ".join(p for p in (self.zipcode, self.city) if p)
        return ", ".join(p for p in (street, city) if p)


class LookingFor(BaseModel):
    """Lo que el usuario busca en su próxima vivienda."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Optional[str] = None
    min_rooms: Optional[float] = None
    min_square_meters: Optional[float] = None
    max_cold_rent: Optional[float] = None
    floor: Optional[str] = Field(None, description="Preferencia de piso ('any', '0', '3'...)")
    balcony: bool = False
    pets_allowed: bool = False
    districts: list[str] = Field(default_factory=list, description="Bezirke / Ortsteile aceptables")

    description: str = Field(default="", description="Texto libre: qué busco")

    @field_validator("min_rooms", "min_square_meters", "max_cold_rent", mode="before")
    @classmethod
    def _parse_numbers(cls, value: Any) -> Optional[float]:
        return parse_optional_float(value)

    @field_validator("balcony", "pets_allowed", mode="before")
    @classmethod
    def _parse_flags(cls, value: Any) -> bool:
        return parse_bool(value)

    @field_validator("floor", mode="before")
    @classmethod
    def _floor_as_text(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("districts", mode="before")
    @classmethod
    def _clean_districts(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [str(d).strip() for d in value if str(d).strip()]

    @field_validator("description", mode="before")
    @classmethod
    def _description_as_text(cls, value: Any) -> str:
        return value or ""


class UserProfile(BaseModel):
    """
    Usuario del sistema con su vivienda ofrecida y su búsqueda.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str = Field(
        ...,
        validation_alias=AliasChoices("id", "uid"),
        description="ID único de la cuenta",
    )
    email: Optional[str] = None
    display_name: Optional[str] = None

    my_apartment: OfferedApartment = Field(default_factory=OfferedApartment)
    looking_for: LookingFor = Field(default_factory=LookingFor)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_descriptions(cls, data: Any) -> Any:
        """
        Documentos viejos guardan las descripciones al nivel raíz
        (offeredDescription / description / lookingForDescription).
        """
        if not isinstance(data, dict):
            return data

        data = dict(data)
        offered_text = data.pop("offeredDescription", None) or data.pop("description", None)
        looking_text = data.pop("lookingForDescription", None)

        if offered_text:
            apartment = dict(data.get("myApartment") or data.get("my_apartment") or {})
            if not apartment.get("description"):
                apartment["description"] = offered_text
            data["myApartment"] = apartment
            data.pop("my_apartment", None)

        if looking_text:
            looking = dict(data.get("lookingFor") or data.get("looking_for") or {})
            if not looking.get("description"):
                looking["description"] = looking_text
            data["lookingFor"] = looking
            data.pop("looking_for", None)

        return data

    @property
    def offered_description(self) -> str:
        return self.my_apartment.description.strip()

    @property
    def looking_for_description(self) -> str:
        return self.looking_for.description.strip()

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        data = self.model_dump(mode="json", exclude={"created_at"})
        data["updated_at"] = datetime.utcnow().isoformat()
        return data
