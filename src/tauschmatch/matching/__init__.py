"""
Motor de matching.

Combina scoring estructurado (reglas ponderadas) y semántico (LLM)
para rankear listings de intercambio para cada usuario.
"""

from tauschmatch.matching.combiner import MatchCombiner, ScoredCandidate, combine_scores
from tauschmatch.matching.criteria_inference import (
    CriteriaInference,
    KeywordCriteriaInference,
    SoughtCriteria,
)
from tauschmatch.matching.engine import MatchingEngine, MatchingError
from tauschmatch.matching.reasons import their_apartment_reasons, your_apartment_reasons
from tauschmatch.matching.structured_scorer import StructuredScore, StructuredScorer

__all__ = [
    "MatchingEngine",
    "MatchingError",
    "MatchCombiner",
    "ScoredCandidate",
    "combine_scores",
    "CriteriaInference",
    "KeywordCriteriaInference",
    "SoughtCriteria",
    "StructuredScore",
    "StructuredScorer",
    "their_apartment_reasons",
    "your_apartment_reasons",
]
