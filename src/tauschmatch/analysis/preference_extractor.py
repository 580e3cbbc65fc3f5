"""
Extractor de preferencias del texto libre del usuario.

Dependencia blanda: cualquier falla devuelve un fallback y nunca
bloquea el scoring estructurado.
"""

import asyncio
import json
from typing import Optional

import structlog
from pydantic import ValidationError

from tauschmatch.config import Settings, get_settings
from tauschmatch.analysis.llm_providers import BaseLLMProvider, clean_json_text
from tauschmatch.models import ExtractedPreferences, LookingFor, UserProfile

logger = structlog.get_logger()


PREFERENCES_SYSTEM_PROMPT = (
    "You extract apartment search preferences for Berlin home swaps. "
    "Answer with valid JSON only."
)

PREFERENCES_USER_PROMPT_TEMPLATE = """Extract apartment preferences from this user description: "{description}"

Return a JSON object with these fields:
- quiet: boolean (if they mention quiet, peaceful, calm...)
- nearParks: boolean (parks, green spaces...)
- familyFriendly: boolean (family, children, schools...)
- petFriendly: boolean (pets, dogs, cats...)
- nearPublicTransport: boolean (U-Bahn, S-Bahn, tram, transport...)
- nearShopping: boolean (shopping, stores, supermarkets...)
- nearRestaurants: boolean (restaurants, cafes, bars...)
- budget: number or null (budget amount in EUR)
- minRooms: number or null (minimum rooms)
- maxRent: number or null (maximum cold rent in EUR)
- preferredDistricts: string[] (Berlin district names)
- lifestyle: string[] (keywords like "student", "professional", "family", "creative")

Only return valid JSON, no other text."""


def describe_looking_for(looking_for: LookingFor) -> str:
    """
    Arma una frase a partir de los campos estructurados de la búsqueda.

    Se usa cuando el usuario no escribió texto libre.
    """
    parts: list[str] = []

    if looking_for.type:
        parts.append(f"Looking for a {looking_for.type.lower()}")
    if looking_for.min_rooms is not None:
        parts.append(f"with at least {looking_for.min_rooms:g} rooms")
    if looking_for.min_square_meters is not None:
        parts.append(f"minimum {looking_for.min_square_meters:g} square meters")
    if looking_for.max_cold_rent is not None:
        parts.append(f"maximum rent €{looking_for.max_cold_rent:g}")
    if looking_for.districts:
        parts.append(f"in districts: {', '.join(looking_for.districts)}")
    if looking_for.floor and looking_for.floor.lower() != "any":
        floor_text = "ground floor" if looking_for.floor == "0" else f"floor {looking_for.floor}"
        parts.append(f"preferably {floor_text}")
    if looking_for.balcony:
        parts.append("with balcony or terrace")
    if looking_for.pets_allowed:
        parts.append("pet-friendly")

    if not parts:
        return ""
    return ", ".join(parts) + "."


class PreferenceExtractor:
    """Convierte la descripción libre del usuario en ExtractedPreferences."""

    def __init__(
        self,
        provider: Optional[BaseLLMProvider],
        settings: Optional[Settings] = None,
    ):
        self._provider = provider
        self._settings = settings or get_settings()

    async def extract_for_user(self, user: UserProfile) -> ExtractedPreferences:
        """Usa el texto libre del usuario o, si falta, el sintetizado."""
        description = user.looking_for_description or describe_looking_for(user.looking_for)
        fallback = ExtractedPreferences.from_looking_for(user.looking_for)
        return await self.extract(description, fallback=fallback)

    async def extract(
        self,
        description: str,
        fallback: Optional[ExtractedPreferences] = None,
    ) -> ExtractedPreferences:
        """
        Extrae preferencias vía LLM.

        Args:
            description: Texto libre del usuario
            fallback: Qué devolver si el LLM falla (default: todo vacío)

        Returns:
            ExtractedPreferences, nunca lanza
        """
        fallback = fallback or ExtractedPreferences()

        if not description or not description.strip():
            return fallback
        if self._provider is None:
            logger.info("Extracción de preferencias omitida: LLM no configurado")
            return fallback

        try:
            response = await asyncio.wait_for(
                self._provider.generate(
                    system_prompt=PREFERENCES_SYSTEM_PROMPT,
                    user_prompt=PREFERENCES_USER_PROMPT_TEMPLATE.format(
                        description=description.strip()
                    ),
                    temperature=0.1,
                    max_tokens=600,
                ),
                timeout=self._settings.llm_timeout_seconds,
            )

            text = clean_json_text(response.text)
            if not text:
                logger.warning("Respuesta vacía extrayendo preferencias")
                return fallback

            data = json.loads(text)
            if not isinstance(data, dict):
                logger.warning("Preferencias con formato inesperado", type=type(data).__name__)
                return fallback

            preferences = ExtractedPreferences.model_validate(data)
            logger.info(
                "Preferencias extraídas",
                provider=response.provider,
                lifestyle=preferences.lifestyle,
                districts=preferences.preferred_districts,
            )
            return preferences

        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Error parseando preferencias del LLM", error=str(e))
            return fallback
        except Exception as e:
            logger.warning(
                "Error extrayendo preferencias",
                error=str(e),
                error_type=type(e).__name__,
            )
            return fallback
