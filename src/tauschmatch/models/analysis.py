"""
Análisis cualitativo de la descripción de un listing.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ListingAnalysis(BaseModel):
    """Lo que el LLM infiere de una descripción libre."""

    model_config = ConfigDict(extra="ignore")

    features: list[str] = Field(default_factory=list, description="balcony, garden, elevator...")
    amenities: list[str] = Field(default_factory=list, description="park, U-Bahn, shops...")
    neighborhood: str = ""
    atmosphere: str = ""
    accessibility: list[str] = Field(default_factory=list)
    suitability: list[str] = Field(default_factory=list, description="students, families...")

    @field_validator("features", "amenities", "accessibility", "suitability", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(v).strip() for v in value if str(v).strip()]

    @field_validator("neighborhood", "atmosphere", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()
