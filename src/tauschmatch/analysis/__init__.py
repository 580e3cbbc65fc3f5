"""
Módulo de análisis con IA.

Provee scoring semántico por batches, extracción de preferencias y
análisis de descripciones usando LLM (Gemini/Groq).
"""

from tauschmatch.analysis.llm_providers import (
    get_llm_provider,
    get_optional_llm_provider,
    is_quota_error,
    BaseLLMProvider,
    GeminiProvider,
    GroqProvider,
    LLMQuotaError,
    LLMResponse,
)
from tauschmatch.analysis.preference_extractor import PreferenceExtractor, describe_looking_for
from tauschmatch.analysis.semantic_scorer import (
    SemanticBatchScorer,
    SemanticListingInput,
    SemanticScore,
    UserStructuredFacts,
    truncate_description,
)
from tauschmatch.analysis.listing_analyzer import ListingDescriptionAnalyzer

__all__ = [
    # Proveedores LLM
    "get_llm_provider",
    "get_optional_llm_provider",
    "is_quota_error",
    "BaseLLMProvider",
    "GeminiProvider",
    "GroqProvider",
    "LLMQuotaError",
    "LLMResponse",
    # Analizadores
    "PreferenceExtractor",
    "describe_looking_for",
    "SemanticBatchScorer",
    "SemanticListingInput",
    "SemanticScore",
    "UserStructuredFacts",
    "truncate_description",
    "ListingDescriptionAnalyzer",
]
