"""
Combinación de scores estructurado + semántico.

combined = round_half_up(0.6 * estructurado + 0.4 * semántico), ambos en
escala 0-10 y con aritmética decimal exacta (0.6 * 5 + 0.4 * 5 da 5,
no 4.999...).
"""

from dataclasses import dataclass, field
from decimal import Decimal

import structlog

from tauschmatch.models import (
    Listing,
    MatchResult,
    ReasonBreakdown,
    ReasonBucket,
    SEMANTIC_FLOOR_SCORE,
)
from tauschmatch.models.fields import round_half_up

logger = structlog.get_logger()

STRUCTURED_WEIGHT = Decimal("0.6")
SEMANTIC_WEIGHT = Decimal("0.4")
DEFAULT_MIN_SCORE = 5


def combine_scores(structured: int, semantic: int) -> int:
    """Score combinado 0-10."""
    return round_half_up(STRUCTURED_WEIGHT * structured + SEMANTIC_WEIGHT * semantic)


@dataclass
class ScoredCandidate:
    """Un listing con sus dos scores y sus cuatro listas de razones."""

    listing: Listing
    structured_score: int
    semantic_score: int = SEMANTIC_FLOOR_SCORE
    their_structured: list[str] = field(default_factory=list)
    their_semantic: list[str] = field(default_factory=list)
    your_structured: list[str] = field(default_factory=list)
    your_semantic: list[str] = field(default_factory=list)

    def to_match_result(self) -> MatchResult:
        return MatchResult(
            listing=self.listing,
            score=combine_scores(self.structured_score, self.semantic_score),
            structured_score=self.structured_score,
            semantic_score=self.semantic_score,
            reason_breakdown=ReasonBreakdown(
                their_apartment=ReasonBucket(
                    structured=list(self.their_structured),
                    semantic=list(self.their_semantic),
                ),
                your_apartment=ReasonBucket(
                    structured=list(self.your_structured),
                    semantic=list(self.your_semantic),
                ),
            ),
        )


class MatchCombiner:
    """Arma los MatchResult, filtra por score mínimo, ordena y corta."""

    def __init__(self, min_score: int = DEFAULT_MIN_SCORE):
        self.min_score = min_score

    def combine(self, candidates: list[ScoredCandidate], limit: int) -> list[MatchResult]:
        results = [candidate.to_match_result() for candidate in candidates]
        kept = [result for result in results if result.score >= self.min_score]

        # sorted() es estable también con reverse=True
        ranked = sorted(kept, key=lambda result: result.score, reverse=True)

        logger.info(
            "Scores combinados",
            candidates=len(candidates),
            above_threshold=len(kept),
            min_score=self.min_score,
            returned=min(len(ranked), limit),
        )
        return ranked[:limit]
