"""
Analizador de descripciones de listings con LLM.

Extrae lo que el anuncio no dice de forma estructurada:
features, amenities del barrio, atmósfera y para quién sirve.

Soporta múltiples proveedores: Gemini, Groq (Llama)
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from tauschmatch.analysis.llm_providers import (
    BaseLLMProvider,
    LLMResponse,
    clean_json_text,
    is_quota_error,
)
from tauschmatch.models import ListingAnalysis

logger = structlog.get_logger()

ANALYSIS_SYSTEM_PROMPT = """You are an experienced Berlin rental market analyst.
You read apartment-swap listings (often in German) and extract information a seeker cares about.

BERLIN CONTEXT:
- "Altbau" usually means high ceilings and wooden floors, "Neubau" means modern building
- "Hinterhaus" / "Seitenflügel" is usually quieter than "Vorderhaus"
- Proximity to U-Bahn / S-Bahn / Tram is a strong plus
- "WBS" means a housing entitlement certificate is required

Return a JSON object with this exact structure:
{
    "features": ["balcony", "elevator", "fitted kitchen"],
    "amenities": ["park", "U-Bahn", "supermarket"],
    "neighborhood": "short description of the neighborhood",
    "atmosphere": "short description of the overall atmosphere",
    "accessibility": ["elevator", "ground floor"],
    "suitability": ["students", "families", "professionals"]
}

RULES:
1. Be honest. Use empty lists or empty strings when the text does not say.
2. Do not invent features that are not in the text.
3. Answer ONLY with the JSON, no extra text."""


class ListingDescriptionAnalyzer:
    """
    Analizador de descripciones usando LLM (Gemini o Groq).
    """

    def __init__(self, provider: Optional[BaseLLMProvider]):
        self._provider = provider

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(lambda e: not is_quota_error(e)),
        reraise=True,
    )
    async def _request(self, description: str) -> LLMResponse:
        return await self._provider.generate(
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            user_prompt=f"LISTING DESCRIPTION:\n{description}\n\n---\nReturn the JSON analysis.",
            temperature=0.1,
            max_tokens=1024,
        )

    async def analyze(self, description: str) -> ListingAnalysis:
        """
        Analiza una descripción libre.

        Returns:
            ListingAnalysis (vacío si el LLM falla o no está configurado)
        """
        if not description or not description.strip() or self._provider is None:
            return ListingAnalysis()

        try:
            response = await self._request(description.strip())
            data = json.loads(clean_json_text(response.text))
            analysis = ListingAnalysis.model_validate(data)

            logger.info(
                "Listing analizado",
                provider=response.provider,
                model=response.model,
                features=len(analysis.features),
                amenities=len(analysis.amenities),
            )
            return analysis

        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Error parseando respuesta de LLM", error=str(e))
            logger.warning("Usando valores por defecto para análisis fallido")
            return ListingAnalysis()

        except Exception as e:
            logger.error("Error en análisis de LLM", error=str(e))
            return ListingAnalysis()
