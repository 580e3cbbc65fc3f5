"""
Scoring semántico por batches con LLM.

Compara en ambos sentidos el texto libre del usuario contra el de cada
listing:
- lo que el usuario BUSCA vs lo que el autor del anuncio OFRECE
- lo que el usuario OFRECE vs lo que el autor del anuncio BUSCA

Los listings se procesan de a batches (una llamada por batch) con las
descripciones truncadas para no pasarse del contexto del modelo. Las
llamadas son secuenciales: cada batch espera al anterior.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from tauschmatch.config import Settings, get_settings
from tauschmatch.analysis.llm_providers import (
    BaseLLMProvider,
    LLMQuotaError,
    clean_json_text,
    is_quota_error,
)
from tauschmatch.analysis.reason_guard import enforce_directionality
from tauschmatch.models import Listing, OfferedApartment, SEMANTIC_FLOOR_SCORE
from tauschmatch.models.fields import round_half_up

logger = structlog.get_logger()

TRUNCATION_MARKER = "..."
MAX_SEMANTIC_SCORE = 10


class BatchParseError(ValueError):
    """La respuesta del LLM no se pudo interpretar como el array esperado."""


@dataclass
class SemanticListingInput:
    """Texto libre de un listing, tal como se manda al LLM."""

    id: str
    offered_description: str
    looking_for_description: str

    @classmethod
    def from_listing(cls, listing: Listing) -> "SemanticListingInput":
        return cls(
            id=str(listing.id),
            offered_description=listing.description.strip(),
            looking_for_description=listing.looking_for_description.strip(),
        )


@dataclass
class UserStructuredFacts:
    """Datos estructurados de la vivienda del usuario; pisan a la descripción."""

    rooms: Optional[float] = None
    square_meters: Optional[float] = None
    cold_rent: Optional[float] = None
    balcony: bool = False
    pets_allowed: bool = False

    @classmethod
    def from_apartment(cls, apartment: OfferedApartment) -> "UserStructuredFacts":
        return cls(
            rooms=apartment.rooms,
            square_meters=apartment.square_meters,
            cold_rent=apartment.cold_rent,
            balcony=apartment.balcony,
            pets_allowed=apartment.pets_allowed,
        )


@dataclass
class SemanticScore:
    """Resultado semántico de un listing."""

    listing_id: str
    score: int = SEMANTIC_FLOOR_SCORE
    what_you_want_and_they_have: list[str] = field(default_factory=list)
    what_you_have_and_they_want: list[str] = field(default_factory=list)

    @classmethod
    def floor(cls, listing_id: str) -> "SemanticScore":
        return cls(listing_id=listing_id)


def truncate_description(text: str, max_length: int) -> str:
    """Recorta a max_length caracteres y agrega '...' si hizo falta."""
    text = text or ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + TRUNCATION_MARKER


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return "not specified"
    return f"{value:g}"


SEMANTIC_SYSTEM_PROMPT = (
    "You compare apartment-swap offers in Berlin. "
    "Follow the user instructions exactly and answer with valid JSON only."
)

SEMANTIC_BATCH_PROMPT_TEMPLATE = """You are matching a user with multiple apartment listings for a home swap. For each listing, analyze TWO SEPARATE AND INDEPENDENT matches.

================================================================================
PART 1: WHAT YOU WANT vs WHAT THEY HAVE
================================================================================

- What YOU (the USER) are LOOKING FOR in your next apartment:
\"\"\"
{user_looking_for}
\"\"\"

- What EACH LISTING AUTHOR currently HAS/OFFERS (their actual apartment):
{listings_offered}

For each listing, build "whatYouWantAndTheyHave":
1. Take what YOU WANT from the "LOOKING FOR" text above.
2. Take what THEY HAVE from that listing's offered text.
3. Write one bullet per match, e.g. "You want a balcony, and they offer a balcony with garden view".
4. DO NOT use anything about what you currently have. DO NOT use anything about what they want.

================================================================================
PART 2: WHAT YOU HAVE vs WHAT THEY WANT
================================================================================

- What YOU (the USER) currently HAVE/OFFER (your actual apartment):
\"\"\"
{user_offered}
\"\"\"
{structured_facts}
- What EACH LISTING AUTHOR is LOOKING FOR in their next apartment:
{listings_looking_for}

For each listing, build "whatYouHaveAndTheyWant":
1. Take what YOU HAVE (use the STRUCTURED FACTS when given).
2. Take what THEY WANT from that listing's looking-for text.
3. Write one bullet per match, e.g. "You have a 3-room apartment, and they want at least 3 rooms".
4. DO NOT use anything about what you want.
5. NEVER describe the listing author's current apartment. NEVER write "they currently have" or "they have"; only "they want" or "they are looking for".

================================================================================
RULES
================================================================================

- "whatYouWantAndTheyHave" uses PART 1 data ONLY. Never mention your own apartment in it.
- "whatYouHaveAndTheyWant" uses PART 2 data ONLY. Never mention the listing's current apartment in it.
- Start every bullet with "You want...", "You have..." or "You offer...". Max 15 words per bullet.
- Return at least 1-2 bullets in EACH array for EVERY listing whenever any plausible connection exists. Be generous and infer meaning ("near U-Bahn" matches "good public transport").
- If a listing's looking-for text is empty, infer what they might want from what you offer, but never describe what they currently have.

SCORING (integer 1-10, both directions together):
- 8-10: strong two-way match, clear mutual interest
- 6-7: good match, some matches in both directions
- 4-5: mediocre, some compatibility but real gaps
- 1-3: ONLY for clear incompatibility
- When in doubt, lean towards the higher score.

Return a JSON array with one object per listing, in the same order as above:
[{{"id": "<listing id>", "score": 7, "whatYouWantAndTheyHave": ["..."], "whatYouHaveAndTheyWant": ["..."]}}]
Valid JSON only, no markdown, no explanations."""

STRUCTURED_FACTS_TEMPLATE = """
YOUR APARTMENT - STRUCTURED FACTS (THIS IS THE TRUTH ABOUT WHAT YOU HAVE):
- Rooms: {rooms}
- Size: {size} sqm
- Cold rent: EUR {rent}
- Balcony: {balcony}
- Pets allowed: {pets}
If the description text above conflicts with these facts, IGNORE the text and use the facts.
"""

EMPTY_OFFERED_PLACEHOLDER = "(no description provided)"
EMPTY_LOOKING_FOR_PLACEHOLDER = (
    "(no specific requirements listed - infer what they might want from what you offer)"
)


class SemanticBatchScorer:
    """
    Scorer semántico con LLM, de a batches secuenciales.

    Fallas por batch (timeout, JSON inválido, respuesta vacía) dejan a
    esos listings con score piso y sin razones. Un error de cuota/billing
    corta el loop: los batches restantes no se intentan.
    """

    def __init__(
        self,
        provider: Optional[BaseLLMProvider],
        settings: Optional[Settings] = None,
    ):
        self._provider = provider
        self._settings = settings or get_settings()
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=5)

    @property
    def batch_size(self) -> int:
        return self._settings.semantic_batch_size

    def should_score(
        self,
        user_looking_for: str,
        user_offered: str,
        listings: list[SemanticListingInput],
    ) -> bool:
        """
        Decide si vale la pena llamar al LLM.

        Sin texto real del usuario o sin texto en ningún listing la
        llamada no puede producir nada útil.
        """
        if self._provider is None:
            return False

        min_length = self._settings.semantic_min_text_length
        user_has_text = (
            len((user_looking_for or "").strip()) > min_length
            or len((user_offered or "").strip()) > min_length
        )
        if not user_has_text:
            return False

        return any(
            listing.offered_description or listing.looking_for_description
            for listing in listings
        )

    async def score_listings(
        self,
        user_looking_for: str,
        user_offered: str,
        listings: list[SemanticListingInput],
        user_facts: Optional[UserStructuredFacts] = None,
    ) -> list[SemanticScore]:
        """
        Calcula score semántico + razones para cada listing.

        Returns:
            Una entrada por listing, en el mismo orden de entrada
        """
        if not listings:
            return []

        if not self.should_score(user_looking_for, user_offered, listings):
            logger.info(
                "Scoring semántico omitido: sin texto libre suficiente o sin LLM",
                listings=len(listings),
            )
            return [SemanticScore.floor(listing.id) for listing in listings]

        user_limit = self._settings.semantic_user_text_limit
        listing_limit = self._settings.semantic_listing_text_limit
        truncated_looking_for = truncate_description(user_looking_for or "", user_limit)
        truncated_offered = truncate_description(user_offered or "", user_limit)

        size = self.batch_size
        total_batches = (len(listings) + size - 1) // size
        results: dict[str, SemanticScore] = {}

        for batch_index, start in enumerate(range(0, len(listings), size), start=1):
            batch = [
                SemanticListingInput(
                    id=listing.id,
                    offered_description=truncate_description(
                        listing.offered_description, listing_limit
                    ),
                    looking_for_description=truncate_description(
                        listing.looking_for_description, listing_limit
                    ),
                )
                for listing in listings[start:start + size]
            ]

            logger.info(
                "Procesando batch semántico",
                batch=batch_index,
                total_batches=total_batches,
                listings=len(batch),
            )

            try:
                batch_results = await self._score_batch_with_retry(
                    truncated_looking_for, truncated_offered, batch, user_facts
                )
            except LLMQuotaError as e:
                logger.error(
                    "Cuota/billing del LLM agotado, se cortan los batches restantes",
                    batch=batch_index,
                    skipped_batches=total_batches - batch_index,
                    error=str(e),
                )
                break
            except Exception as e:
                logger.warning(
                    "Batch semántico fallido, se usa score piso",
                    batch=batch_index,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            results.update(batch_results)

            if start + size < len(listings):
                await asyncio.sleep(self._settings.semantic_batch_delay_seconds)

        scored = [
            results.get(listing.id) or SemanticScore.floor(listing.id)
            for listing in listings
        ]
        logger.info(
            "Scoring semántico completado",
            listings=len(listings),
            batches=total_batches,
            with_reasons=sum(
                1 for s in scored
                if s.what_you_want_and_they_have or s.what_you_have_and_they_want
            ),
        )
        return scored

    async def _score_batch_with_retry(
        self,
        user_looking_for: str,
        user_offered: str,
        batch: list[SemanticListingInput],
        user_facts: Optional[UserStructuredFacts],
    ) -> dict[str, SemanticScore]:
        """Un intento por defecto; reintenta solo fallas no-quota si se configuró."""
        attempts = 1 + self._settings.llm_transient_retries
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(lambda e: not isinstance(e, LLMQuotaError)),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._score_batch(user_looking_for, user_offered, batch, user_facts)
        return {}

    async def _score_batch(
        self,
        user_looking_for: str,
        user_offered: str,
        batch: list[SemanticListingInput],
        user_facts: Optional[UserStructuredFacts],
    ) -> dict[str, SemanticScore]:
        prompt = self.build_prompt(user_looking_for, user_offered, batch, user_facts)

        try:
            response = await asyncio.wait_for(
                self._provider.generate(
                    system_prompt=SEMANTIC_SYSTEM_PROMPT,
                    user_prompt=prompt,
                    temperature=0.2,
                    max_tokens=2000,
                ),
                timeout=self._settings.llm_timeout_seconds,
            )
        except Exception as e:
            if is_quota_error(e):
                raise LLMQuotaError(str(e)) from e
            raise

        return self.parse_response(response.text, batch)

    def build_prompt(
        self,
        user_looking_for: str,
        user_offered: str,
        batch: list[SemanticListingInput],
        user_facts: Optional[UserStructuredFacts] = None,
    ) -> str:
        """Arma el prompt de un batch (descripciones ya truncadas)."""
        listings_offered = "\n".join(
            f'Listing {i} (id: {listing.id}):\n"""{listing.offered_description or EMPTY_OFFERED_PLACEHOLDER}"""'
            for i, listing in enumerate(batch, start=1)
        )
        listings_looking_for = "\n".join(
            f'Listing {i} (id: {listing.id}):\n"""{listing.looking_for_description or EMPTY_LOOKING_FOR_PLACEHOLDER}"""'
            for i, listing in enumerate(batch, start=1)
        )

        structured_facts = ""
        if user_facts is not None:
            structured_facts = STRUCTURED_FACTS_TEMPLATE.format(
                rooms=_format_number(user_facts.rooms),
                size=_format_number(user_facts.square_meters),
                rent=_format_number(user_facts.cold_rent),
                balcony="Yes" if user_facts.balcony else "No",
                pets="Yes" if user_facts.pets_allowed else "No",
            )

        return SEMANTIC_BATCH_PROMPT_TEMPLATE.format(
            user_looking_for=user_looking_for or "(not provided)",
            user_offered=user_offered or "(not provided)",
            structured_facts=structured_facts,
            listings_offered=listings_offered,
            listings_looking_for=listings_looking_for,
        )

    def parse_response(
        self,
        raw_text: str,
        batch: list[SemanticListingInput],
    ) -> dict[str, SemanticScore]:
        """
        Interpreta el array JSON del LLM.

        Raises:
            BatchParseError: respuesta vacía, no-JSON o que no es un array
        """
        text = clean_json_text(raw_text)
        if not text:
            raise BatchParseError("Respuesta vacía del LLM")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Error parseando respuesta del LLM", response=text[:500], error=str(e))
            raise BatchParseError(f"JSON inválido: {e}") from e

        if isinstance(data, dict):
            # Algunos modelos envuelven el array: {"results": [...]}
            wrapped = next((v for v in data.values() if isinstance(v, list)), None)
            if wrapped is None:
                raise BatchParseError("La respuesta no es un array")
            data = wrapped

        if not isinstance(data, list):
            raise BatchParseError(f"La respuesta no es un array: {type(data).__name__}")

        batch_ids = [listing.id for listing in batch]
        results: dict[str, SemanticScore] = {}

        for position, item in enumerate(data):
            if not isinstance(item, dict):
                continue

            listing_id = str(item.get("id", "")).strip()
            if listing_id not in batch_ids:
                # Sin id reconocible: se asume el mismo orden del prompt
                if position >= len(batch_ids):
                    continue
                listing_id = batch_ids[position]
            if listing_id in results:
                continue

            want, have = enforce_directionality(
                listing_id,
                self._reason_list(item.get("whatYouWantAndTheyHave")),
                self._reason_list(item.get("whatYouHaveAndTheyWant")),
            )
            results[listing_id] = SemanticScore(
                listing_id=listing_id,
                score=self._coerce_score(item.get("score")),
                what_you_want_and_they_have=want,
                what_you_have_and_they_want=have,
            )

        missing = [listing_id for listing_id in batch_ids if listing_id not in results]
        if missing:
            logger.warning("Listings sin resultado en la respuesta del LLM", missing=missing)

        return results

    def _coerce_score(self, value: Any) -> int:
        try:
            score = round_half_up(float(value))
        except (TypeError, ValueError):
            return SEMANTIC_FLOOR_SCORE
        return max(SEMANTIC_FLOOR_SCORE, min(MAX_SEMANTIC_SCORE, score))

    def _reason_list(self, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
