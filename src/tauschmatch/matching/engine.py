"""
Motor de matching entre usuarios y listings de intercambio.

Flujo por request:
1. Traer candidatos del storage (el doble del límite, mínimo 30)
2. Extraer preferencias del usuario una sola vez (dependencia blanda)
3. Score estructurado + razones por listing
4. Score semántico por batches (si hay texto libre suficiente)
5. Combinar, filtrar por score mínimo, ordenar y cortar

El request sólo falla si falla la consulta de listings al storage.
Cualquier problema con el LLM degrada a scoring estructurado.
"""

from typing import Optional

import structlog

from tauschmatch.config import Settings, get_settings
from tauschmatch.analysis import (
    BaseLLMProvider,
    PreferenceExtractor,
    SemanticBatchScorer,
    SemanticListingInput,
    UserStructuredFacts,
    get_optional_llm_provider,
)
from tauschmatch.database import ListingRepository, UserRepository
from tauschmatch.matching.combiner import MatchCombiner, ScoredCandidate
from tauschmatch.matching.criteria_inference import CriteriaInference, KeywordCriteriaInference
from tauschmatch.matching.reasons import their_apartment_reasons, your_apartment_reasons
from tauschmatch.matching.structured_scorer import StructuredScorer
from tauschmatch.models import Listing, MatchFilters, MatchResult, UserProfile

logger = structlog.get_logger()


class MatchingError(Exception):
    """Falla de infraestructura (storage) que impide calcular matches."""


class MatchingEngine:
    """
    Orquestador de "find matches".

    Todos los colaboradores se inyectan; sin provider LLM el motor
    funciona igual, sólo con scoring estructurado.
    """

    def __init__(
        self,
        listing_repo: Optional[ListingRepository] = None,
        user_repo: Optional[UserRepository] = None,
        provider: Optional[BaseLLMProvider] = None,
        settings: Optional[Settings] = None,
        structured_scorer: Optional[StructuredScorer] = None,
        criteria_inference: Optional[CriteriaInference] = None,
        preference_extractor: Optional[PreferenceExtractor] = None,
        semantic_scorer: Optional[SemanticBatchScorer] = None,
        combiner: Optional[MatchCombiner] = None,
    ):
        self.settings = settings or get_settings()
        self.listing_repo = listing_repo or ListingRepository()
        self.user_repo = user_repo or UserRepository()
        self.structured_scorer = structured_scorer or StructuredScorer()
        self.criteria_inference = criteria_inference or KeywordCriteriaInference()
        self.preference_extractor = preference_extractor or PreferenceExtractor(
            provider, settings=self.settings
        )
        self.semantic_scorer = semantic_scorer or SemanticBatchScorer(
            provider, settings=self.settings
        )
        self.combiner = combiner or MatchCombiner(min_score=self.settings.match_min_score)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MatchingEngine":
        """Motor con repositorios Supabase y el LLM configurado (si hay API key)."""
        settings = settings or get_settings()
        return cls(provider=get_optional_llm_provider(settings), settings=settings)

    def fetch_limit(self, limit: int) -> int:
        return max(2 * limit, self.settings.match_min_fetch)

    async def find_matches_for_user_id(
        self,
        user_id: str,
        filters: Optional[MatchFilters] = None,
        limit: Optional[int] = None,
    ) -> list[MatchResult]:
        """Como find_matches, resolviendo antes el perfil (no existe -> [])."""
        try:
            user = self.user_repo.get_by_id(user_id)
        except Exception as e:
            logger.error("Error consultando usuario", user_id=user_id, error=str(e))
            raise MatchingError("No se pudo obtener el usuario") from e

        if user is None:
            logger.info("Usuario no encontrado", user_id=user_id)
            return []
        return await self.find_matches(user, filters=filters, limit=limit)

    async def find_matches(
        self,
        user: UserProfile,
        filters: Optional[MatchFilters] = None,
        limit: Optional[int] = None,
    ) -> list[MatchResult]:
        """
        Encuentra y rankea listings para un usuario.

        Args:
            user: Perfil del usuario
            filters: Filtros opcionales que se empujan al storage
            limit: Máximo de resultados (default: match_default_limit)

        Returns:
            Lista de MatchResult ordenados por score combinado

        Raises:
            MatchingError: Si falla la consulta de listings
        """
        limit = limit or self.settings.match_default_limit

        try:
            listings = self.listing_repo.search_by_filters(filters, self.fetch_limit(limit))
        except Exception as e:
            logger.error("Error consultando listings", user_id=user.id, error=str(e))
            raise MatchingError("No se pudieron obtener listings") from e

        usable = [listing for listing in listings if self._is_usable(listing)]
        if not usable:
            logger.info("No hay listings para matchear", user_id=user.id, fetched=len(listings))
            return []

        logger.info(
            "Buscando matches",
            user_id=user.id,
            fetched=len(listings),
            usable=len(usable),
            limit=limit,
        )

        preferences = await self.preference_extractor.extract_for_user(user)

        candidates = []
        for listing in usable:
            structured = self.structured_scorer.score(user, listing)
            candidates.append(
                ScoredCandidate(
                    listing=listing,
                    structured_score=structured.normalized,
                    their_structured=their_apartment_reasons(user, listing, preferences),
                    your_structured=your_apartment_reasons(
                        user, listing, inference=self.criteria_inference
                    ),
                )
            )

        semantic_scores = await self.semantic_scorer.score_listings(
            user_looking_for=user.looking_for_description,
            user_offered=user.offered_description,
            listings=[SemanticListingInput.from_listing(listing) for listing in usable],
            user_facts=UserStructuredFacts.from_apartment(user.my_apartment),
        )
        for candidate, semantic in zip(candidates, semantic_scores):
            candidate.semantic_score = semantic.score
            candidate.their_semantic = semantic.what_you_want_and_they_have
            candidate.your_semantic = semantic.what_you_have_and_they_want

        matches = self.combiner.combine(candidates, limit)
        logger.info(
            "Matching completado",
            user_id=user.id,
            candidates=len(candidates),
            matches=len(matches),
            top_score=matches[0].score if matches else None,
        )
        return matches

    def _is_usable(self, listing: Listing) -> bool:
        if not listing.id:
            return False
        if not listing.has_required_fields():
            logger.debug("Listing incompleto descartado", listing_id=listing.id)
            return False
        return True
