"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Encontrar la raíz del proyecto (donde está el .env)
# config.py -> tauschmatch/ -> src/ -> project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase (listings, users, saved_listings)
    supabase_url: Optional[str] = Field(None, description="URL del proyecto Supabase")
    supabase_key: Optional[str] = Field(None, description="Anon key de Supabase")
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key para operaciones admin"
    )

    # LLM Provider
    llm_provider: str = Field(
        "groq",
        description="Proveedor de LLM a usar: 'gemini' o 'groq'"
    )

    # Gemini
    gemini_api_key: Optional[str] = Field(None, description="API key de Google Gemini")
    gemini_model: str = Field("gemini-2.0-flash", description="Modelo de Gemini a usar")

    # Groq
    groq_api_key: Optional[str] = Field(None, description="API key de Groq")
    groq_model: str = Field(
        "llama-3.3-70b-versatile",
        description="Modelo de Groq a usar (llama-3.1-8b-instant, llama-3.3-70b-versatile)"
    )

    llm_timeout_seconds: float = Field(
        60.0, gt=0, description="Timeout por llamada al LLM (segundos)"
    )
    llm_transient_retries: int = Field(
        0, ge=0, le=3,
        description="Reintentos ante fallas no-quota del LLM (0 = sin reintento)",
    )

    # Semantic scoring
    semantic_batch_size: int = Field(8, ge=1, description="Listings por llamada al LLM")
    semantic_batch_delay_seconds: float = Field(
        0.15, ge=0.0, description="Pausa entre batches exitosos (rate limit)"
    )
    semantic_user_text_limit: int = Field(
        500, ge=1, description="Máximo de caracteres por descripción del usuario"
    )
    semantic_listing_text_limit: int = Field(
        400, ge=1, description="Máximo de caracteres por descripción del listing"
    )
    semantic_min_text_length: int = Field(
        10, ge=0, description="Largo mínimo de texto libre para invocar al LLM"
    )

    # Matching
    match_min_score: int = Field(
        5, ge=0, le=10, description="Score combinado mínimo (inclusive)"
    )
    match_default_limit: int = Field(20, ge=1, description="Resultados por defecto")
    match_min_fetch: int = Field(
        30, ge=1, description="Mínimo de listings a traer del storage"
    )

    # HTTP
    api_host: str = Field("0.0.0.0", description="Host de escucha de la API")
    api_port: int = Field(8080, description="Puerto de la API")

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del sistema
LISTING_REQUIRED_FIELDS = (
    "link",
    "cold_rent",
    "rooms",
    "square_meters",
    "title",
    "district",
    "type",
)

BERLIN_DISTRICTS = [
    # Bezirke
    "Mitte",
    "Friedrichshain-Kreuzberg",
    "Pankow",
    "Charlottenburg-Wilmersdorf",
    "Spandau",
    "Steglitz-Zehlendorf",
    "Tempelhof-Schöneberg",
    "Neukölln",
    "Treptow-Köpenick",
    "Marzahn-Hellersdorf",
    "Lichtenberg",
    "Reinickendorf",
    # Ortsteile más buscados
    "Friedrichshain",
    "Kreuzberg",
    "Prenzlauer Berg",
    "Wedding",
    "Moabit",
    "Tiergarten",
    "Charlottenburg",
    "Wilmersdorf",
    "Schöneberg",
    "Tempelhof",
    "Steglitz",
    "Zehlendorf",
    "Treptow",
    "Köpenick",
    "Weißensee",
    "Friedenau",
    "Alt-Treptow",
    "Gesundbrunnen",
    "Rummelsburg",
    "Karlshorst",
    "Lichtenrade",
    "Mariendorf",
    "Britz",
    "Rudow",
    "Marzahn",
    "Hellersdorf",
    "Tegel",
    "Wittenau",
]
