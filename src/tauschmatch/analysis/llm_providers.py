"""
Abstracción de proveedores LLM.

Permite switchear fácilmente entre diferentes proveedores (Gemini, Groq)
sin cambiar el código de los analizadores. El proveedor se construye
explícitamente y se inyecta en cada componente que lo necesita.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import structlog

from tauschmatch.config import Settings, get_settings

logger = structlog.get_logger()


QUOTA_ERROR_CODES = {"insufficient_quota", "billing_not_active", "resource_exhausted"}
QUOTA_MESSAGE_MARKERS = ("quota", "billing", "resource_exhausted")


class LLMQuotaError(Exception):
    """El proveedor rechazó la llamada por cuota o billing agotado."""


def is_quota_error(error: BaseException) -> bool:
    """
    Detecta errores de cuota/billing del proveedor.

    Groq expone status_code=429 y body con code; google-genai expone
    code=429 y status='RESOURCE_EXHAUSTED'.
    """
    if isinstance(error, LLMQuotaError):
        return True

    for attr in ("code", "status", "type"):
        value = getattr(error, attr, None)
        if isinstance(value, str) and value.lower() in QUOTA_ERROR_CODES:
            return True
        if value == 429:
            return True

    if getattr(error, "status_code", None) == 429:
        return True

    body = getattr(error, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and str(inner.get("code", "")).lower() in QUOTA_ERROR_CODES:
            return True

    message = str(error).lower()
    return any(marker in message for marker in QUOTA_MESSAGE_MARKERS)


_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def clean_json_text(raw_text: str) -> str:
    """Quita los bloques markdown que a veces envuelven el JSON."""
    text = (raw_text or "").strip()
    if "```" in text:
        text = _CODE_FENCE.sub("", text).replace("```", "")
    return text.strip()


@dataclass
class LLMResponse:
    """Respuesta normalizada de cualquier LLM."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None


class BaseLLMProvider(ABC):
    """Clase base para proveedores de LLM."""

    provider_name: str = "base"

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        """
        Genera una respuesta del LLM.

        Args:
            system_prompt: Instrucciones del sistema
            user_prompt: Prompt del usuario
            temperature: Temperatura de generación (0.0-1.0)
            max_tokens: Máximo de tokens a generar

        Returns:
            LLMResponse con el texto generado
        """
        pass


def _require_api_key(api_key: Optional[str], env_name: str) -> str:
    if not api_key:
        raise ValueError(f"{env_name} no configurada")
    return api_key


class GeminiProvider(BaseLLMProvider):
    """
    Proveedor de Google Gemini (SDK google-genai, cliente async).

    Pide salida application/json: los prompts de matching esperan un
    array u objeto JSON y así se evitan los bloques markdown.
    """

    provider_name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        from google import genai

        settings = settings or get_settings()
        self.api_key = _require_api_key(api_key or settings.gemini_api_key, "GEMINI_API_KEY")
        self.model = model or settings.gemini_model
        self.client = genai.Client(api_key=self.api_key)
        logger.info("GeminiProvider inicializado", model=self.model)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        from google.genai import types

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=user_prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
            ),
        )

        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            text=(response.text or "").strip(),
            model=self.model,
            provider=self.provider_name,
            tokens_used=getattr(usage, "total_token_count", None),
        )


class GroqProvider(BaseLLMProvider):
    """
    Proveedor de Groq (chat completions, cliente async).

    llama-3.3-70b-versatile rinde mejor con los prompts de batch
    (8 listings por llamada); llama-3.1-8b-instant alcanza para la
    extracción de preferencias.
    """

    provider_name = "groq"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        from groq import AsyncGroq

        settings = settings or get_settings()
        self.api_key = _require_api_key(api_key or settings.groq_api_key, "GROQ_API_KEY")
        self.model = model or settings.groq_model
        # Los reintentos los decide cada analizador, no el SDK
        self.client = AsyncGroq(api_key=self.api_key, max_retries=0)
        logger.info("GroqProvider inicializado", model=self.model)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )

        return LLMResponse(
            text=(response.choices[0].message.content or "").strip(),
            model=self.model,
            provider=self.provider_name,
            tokens_used=response.usage.total_tokens if response.usage else None,
        )


PROVIDERS: dict[str, type[BaseLLMProvider]] = {
    GroqProvider.provider_name: GroqProvider,
    GeminiProvider.provider_name: GeminiProvider,
}


def get_llm_provider(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> BaseLLMProvider:
    """
    Construye el proveedor configurado (LLM_PROVIDER).

    Raises:
        ValueError: proveedor desconocido o API key faltante
    """
    settings = settings or get_settings()
    name = (provider or settings.llm_provider).strip().lower()

    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise ValueError(
            f"Proveedor LLM no soportado: {name}. Opciones: {', '.join(sorted(PROVIDERS))}"
        )
    return provider_cls(api_key=api_key, model=model, settings=settings)


def get_optional_llm_provider(settings: Optional[Settings] = None) -> Optional[BaseLLMProvider]:
    """
    Como get_llm_provider, pero devuelve None si faltan credenciales.

    El LLM es una dependencia blanda: sin él, el matching degrada a
    scoring estructurado.
    """
    try:
        return get_llm_provider(settings=settings)
    except ValueError as e:
        logger.warning("LLM no disponible, se usará solo scoring estructurado", error=str(e))
        return None
