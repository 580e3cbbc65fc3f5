"""
Inferencia best-effort de lo que busca el autor de un listing.

El "looking for" de los anuncios es texto libre (alemán o inglés). Este
módulo intenta sacar criterios comparables en tres niveles, del más
confiable al menos:

1. search_criteria estructurado del listing, si existe
2. Regex sobre el texto libre (habitaciones, m², alquiler máximo,
   barrios, mascotas, balcón), con manejo de negaciones cercanas
3. Sin texto ni criterios: se asume que quieren al menos lo que tienen
   hoy. Es un proxy débil y queda marcado como inferido.

La interfaz CriteriaInference permite reemplazar esto (ej. por una
llamada al LLM) sin tocar el scorer.
"""

import re
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from tauschmatch.config import BERLIN_DISTRICTS
from tauschmatch.models import Listing

SOURCE_STRUCTURED = "structured"
SOURCE_TEXT = "text"
SOURCE_CURRENT_APARTMENT = "current_apartment"
SOURCE_NONE = "none"


@dataclass
class SoughtCriteria:
    """Lo que (creemos que) busca el autor del listing."""

    source: str = SOURCE_NONE
    min_rooms: Optional[float] = None
    min_square_meters: Optional[float] = None
    max_cold_rent: Optional[float] = None
    districts: list[str] = field(default_factory=list)
    wants_pets: bool = False
    wants_balcony: bool = False

    @property
    def is_inferred(self) -> bool:
        """True cuando salió de la vivienda actual y no de un deseo expresado."""
        return self.source == SOURCE_CURRENT_APARTMENT

    def is_empty(self) -> bool:
        return (
            self.min_rooms is None
            and self.min_square_meters is None
            and self.max_cold_rent is None
            and not self.districts
            and not self.wants_pets
            and not self.wants_balcony
        )


class CriteriaInference(ABC):
    """Interfaz para inferir criterios de búsqueda de un listing."""

    @abstractmethod
    def infer(self, listing: Listing) -> SoughtCriteria:
        pass


class KeywordCriteriaInference(CriteriaInference):
    """Inferencia basada en search_criteria + regex + fallback."""

    _NUM = r"(\d+(?:[.,]\d+)?)"
    _ROOM_WORD = r"(?:zimmer|zi\b|zkb|raume|rooms?\b|r\b)"
    _SIZE_UNIT = r"(?:m2|qm|sqm|m\b|quadratmeter|square\s*met(?:er|re)s?)"
    _AMOUNT = r"(\d{1,2}\.?\d{3}|\d{3,4})\b"
    _CURRENCY = r"(?:eur|euro|euros)\b"
    _BOUND = r"(?:max(?:imal|imum|\.)?|bis(?:\s+zu)?|up\s+to|under|unter|hochstens|not\s+more\s+than)"

    ROOM_PATTERNS: list[str] = [
        rf"\b(?:at\s+least|min(?:imum|destens|d\.?|\.)?|ab)\s*{_NUM}\s*-?\s*{_ROOM_WORD}",
        rf"\b{_NUM}\s*\+\s*-?\s*{_ROOM_WORD}",
        rf"\b{_NUM}\s*(?:-|bis|to)\s*\d+(?:[.,]\d+)?\s*-?\s*{_ROOM_WORD}",
        rf"\b{_NUM}\s*-?\s*{_ROOM_WORD}",
    ]

    SIZE_PATTERNS: list[str] = [
        rf"\b(?:at\s+least|min(?:imum|destens|d\.?|\.)?|ab)\s*(\d{{2,3}})\s*{_SIZE_UNIT}",
        rf"\b(\d{{2,3}})\s*\+\s*{_SIZE_UNIT}",
        rf"\b(\d{{2,3}})\s*(?:-|bis|to)\s*\d{{2,3}}\s*{_SIZE_UNIT}",
        rf"\b(\d{{2,3}})\s*{_SIZE_UNIT}",
    ]

    # Un tope de alquiler necesita moneda o palabra de alquiler cerca:
    # "Einzug bis 2026" o "bis zu 120 qm" no son presupuestos.
    RENT_PATTERNS: list[str] = [
        rf"\b{_BOUND}\s*{_CURRENCY}\s*{_AMOUNT}",
        rf"\b{_BOUND}\s*{_AMOUNT}\s*{_CURRENCY}",
        rf"\b(?:kaltmiete|warmmiete|miete|rent|budget)\b\D{{0,20}}?{_BOUND}?\s*(?:{_CURRENCY}\s*)?{_AMOUNT}(?!\s*{_SIZE_UNIT})",
    ]

    PET_PATTERNS: list[str] = [
        r"\bhaustier\w*\b",
        r"\bhund\w*\b",
        r"\bkatze\w*\b",
        r"\bpets?\b",
        r"\bdogs?\b",
        r"\bcats?\b",
        r"\btierhaltung\b",
    ]

    BALCONY_PATTERNS: list[str] = [
        r"\bbalkon\w*\b",
        r"\bbalcon(?:y|ies)\b",
        r"\bterrass\w*\b",
        r"\bterrace\b",
        r"\bloggia\b",
        r"\boutdoor\s+space\b",
        r"\bgarten\b",
        r"\bgarden\b",
    ]

    NEGATION_PATTERNS: list[str] = [
        r"\bno\b",
        r"\bnot\b",
        r"\bwithout\b",
        r"\bkein\w*\b",
        r"\bnicht\b",
        r"\bohne\b",
        r"\bverboten\b",
    ]

    def __init__(self, known_districts: Optional[list[str]] = None):
        self._known_districts = known_districts or BERLIN_DISTRICTS

    def infer(self, listing: Listing) -> SoughtCriteria:
        criteria = listing.search_criteria
        if criteria is not None and not criteria.is_empty():
            return SoughtCriteria(
                source=SOURCE_STRUCTURED,
                min_rooms=criteria.min_rooms,
                min_square_meters=criteria.min_square_meters,
                max_cold_rent=criteria.max_cold_rent,
                districts=list(criteria.districts),
                wants_pets=bool(criteria.pets_allowed),
                wants_balcony=bool(criteria.balcony),
            )

        text = listing.looking_for_description.strip()
        if text:
            return self.infer_from_text(text)

        return self.infer_from_current_apartment(listing)

    def infer_from_text(self, text: str) -> SoughtCriteria:
        normalized = self._normalize(text)
        sentences = self._split_sentences(normalized)

        return SoughtCriteria(
            source=SOURCE_TEXT,
            min_rooms=self._first_number(normalized, self.ROOM_PATTERNS, maximum=10),
            min_square_meters=self._first_number(normalized, self.SIZE_PATTERNS, minimum=10),
            max_cold_rent=self._first_number(normalized, self.RENT_PATTERNS, minimum=100),
            districts=self._mentioned_districts(normalized),
            wants_pets=self._mentions(sentences, self.PET_PATTERNS),
            wants_balcony=self._mentions(sentences, self.BALCONY_PATTERNS),
        )

    def infer_from_current_apartment(self, listing: Listing) -> SoughtCriteria:
        """Proxy: si hoy viven en 2 habitaciones, asumimos que quieren al menos 2."""
        return SoughtCriteria(
            source=SOURCE_CURRENT_APARTMENT,
            min_rooms=listing.rooms,
            min_square_meters=listing.square_meters,
            wants_pets=listing.pets_allowed,
            wants_balcony=listing.balcony_or_terrace,
        )

    def _normalize(self, text: str) -> str:
        # "€" no sobrevive al paso a ASCII
        normalized = unicodedata.normalize("NFKD", (text or "").replace("€", " eur "))
        ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
        return re.sub(r"\s+", " ", ascii_text).strip().lower()

    def _split_sentences(self, text: str) -> list[str]:
        return [s.strip() for s in re.split(r"[.!?\n;]+(?=\s|$)", text) if s.strip()]

    def _to_number(self, raw: str) -> Optional[float]:
        raw = raw.strip()
        if re.fullmatch(r"\d{1,2}\.\d{3}", raw):
            raw = raw.replace(".", "")
        raw = raw.replace(",", ".")
        try:
            return float(raw)
        except ValueError:
            return None

    def _first_number(
        self,
        text: str,
        patterns: list[str],
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
    ) -> Optional[float]:
        for pattern in patterns:
            for match in re.finditer(pattern, text, flags=re.IGNORECASE):
                value = self._to_number(match.group(1))
                if value is None:
                    continue
                if minimum is not None and value < minimum:
                    continue
                if maximum is not None and value > maximum:
                    continue
                return value
        return None

    def _mentioned_districts(self, text: str) -> list[str]:
        found = []
        for district in self._known_districts:
            needle = self._normalize(district)
            if re.search(rf"\b{re.escape(needle)}\b", text):
                found.append(district)
        return found

    def _is_negated(self, sentence: str, keyword_pattern: str) -> bool:
        for match in re.finditer(keyword_pattern, sentence, flags=re.IGNORECASE):
            start = max(0, match.start() - 30)
            end = min(len(sentence), match.end() + 15)
            window = sentence[start:end]
            for neg_pattern in self.NEGATION_PATTERNS:
                if re.search(neg_pattern, window, flags=re.IGNORECASE):
                    return True
        return False

    def _mentions(self, sentences: list[str], patterns: list[str]) -> bool:
        for sentence in sentences:
            for pattern in patterns:
                if re.search(pattern, sentence, flags=re.IGNORECASE):
                    if not self._is_negated(sentence, pattern):
                        return True
        return False
