"""
Scoring estructurado entre la búsqueda del usuario y un listing.

Suma ponderada de criterios independientes. Cada criterio suma a
`score` y a `max_possible` solo si ambos lados tienen el dato, así un
criterio ausente se excluye en lugar de penalizar.

Pesos: alquiler 35, habitaciones 30, barrio 20, tipo 10, superficie 5.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from tauschmatch.models import Listing, LookingFor, UserProfile
from tauschmatch.models.fields import round_half_up

RENT_WEIGHT = 35
ROOMS_WEIGHT = 30
DISTRICT_WEIGHT = 20
TYPE_WEIGHT = 10
SIZE_WEIGHT = 5

# (ratio mínimo = max_rent_usuario / alquiler_listing, puntos)
RENT_BANDS: list[tuple[float, int]] = [
    (1.2, 35),
    (1.0, 30),
    (0.9, 22),
    (0.8, 12),
    (0.7, 5),
]

# (diferencia mínima = rooms_listing - min_rooms_usuario, puntos)
# Más habitaciones de las pedidas suma, con rendimiento decreciente;
# una de menos pesa más que una de más.
ROOM_BANDS: list[tuple[float, int]] = [
    (3, 20),
    (2, 24),
    (1, 28),
    (0, 30),
    (-1, 18),
    (-2, 8),
]

DISTRICT_EXACT_POINTS = 20
DISTRICT_RELATED_POINTS = 12
DISTRICT_OTHER_POINTS = 3

TYPE_EXACT_POINTS = 10
TYPE_OTHER_POINTS = 2

# (ratio mínimo = size_listing / min_size_usuario, puntos)
SIZE_BANDS: list[tuple[float, int]] = [
    (1.3, 5),
    (1.1, 4),
    (1.0, 4),
]
SIZE_MEETS_MINIMUM_POINTS = 1

_DISTRICT_TOKEN_SPLIT = re.compile(r"[\s\-/]+")
_IGNORED_DISTRICT_TOKENS = {"berlin"}


@dataclass
class CriterionScore:
    """Aporte de un criterio al score."""

    name: str
    points: int
    weight: int


@dataclass
class StructuredScore:
    """Resultado del scoring estructurado."""

    percentage: float  # 0 a 100
    criteria: list[CriterionScore] = field(default_factory=list)

    @property
    def score(self) -> int:
        return sum(c.points for c in self.criteria)

    @property
    def max_possible(self) -> int:
        return sum(c.weight for c in self.criteria)

    @property
    def normalized(self) -> int:
        """Score en escala 0-10."""
        return normalize_percentage(self.percentage)

    def points_for(self, name: str) -> Optional[int]:
        for criterion in self.criteria:
            if criterion.name == name:
                return criterion.points
        return None


def normalize_percentage(percentage: float) -> int:
    """0-100 -> 0-10 con redondeo half-up."""
    return round_half_up(percentage / 10)


def _banded(value: float, bands: list[tuple[float, int]], default: int = 0) -> int:
    for threshold, points in bands:
        if value >= threshold:
            return points
    return default


def _positive(value: Optional[float]) -> Optional[float]:
    if value is None or value <= 0:
        return None
    return value


def rent_points(max_rent: Optional[float], listing_rent: Optional[float]) -> Optional[int]:
    """Puntos de alquiler, o None si el criterio no es comparable."""
    max_rent = _positive(max_rent)
    listing_rent = _positive(listing_rent)
    if max_rent is None or listing_rent is None:
        return None
    return _banded(max_rent / listing_rent, RENT_BANDS)


def room_points(min_rooms: Optional[float], listing_rooms: Optional[float]) -> Optional[int]:
    min_rooms = _positive(min_rooms)
    listing_rooms = _positive(listing_rooms)
    if min_rooms is None or listing_rooms is None:
        return None
    return _banded(listing_rooms - min_rooms, ROOM_BANDS)


def size_points(min_size: Optional[float], listing_size: Optional[float]) -> Optional[int]:
    min_size = _positive(min_size)
    listing_size = _positive(listing_size)
    if min_size is None or listing_size is None:
        return None
    if listing_size < min_size:
        return 0
    return _banded(listing_size / min_size, SIZE_BANDS, default=SIZE_MEETS_MINIMUM_POINTS)


def type_points(wanted_type: Optional[str], listing_type: Optional[str]) -> Optional[int]:
    if not wanted_type or not listing_type:
        return None
    if wanted_type.strip().casefold() == listing_type.strip().casefold():
        return TYPE_EXACT_POINTS
    return TYPE_OTHER_POINTS


def district_tokens(district: str) -> set[str]:
    """'Friedrichshain-Kreuzberg' -> {'friedrichshain', 'kreuzberg'}."""
    return {
        token
        for token in _DISTRICT_TOKEN_SPLIT.split(district.casefold())
        if len(token) >= 3 and token not in _IGNORED_DISTRICT_TOKENS
    }


def is_exact_district(districts: list[str], listing_district: str) -> bool:
    target = listing_district.strip().casefold()
    return any(d.strip().casefold() == target for d in districts)


def related_district(districts: list[str], listing_district: str) -> Optional[str]:
    """Devuelve el barrio del usuario que comparte token con el del listing."""
    listing_tokens = district_tokens(listing_district)
    for district in districts:
        if district_tokens(district) & listing_tokens:
            return district
    return None


def district_points(districts: list[str], listing_district: Optional[str]) -> Optional[int]:
    if not districts or not listing_district or not listing_district.strip():
        return None
    if is_exact_district(districts, listing_district):
        return DISTRICT_EXACT_POINTS
    if related_district(districts, listing_district):
        return DISTRICT_RELATED_POINTS
    return DISTRICT_OTHER_POINTS


class StructuredScorer:
    """Score determinístico 0-100 entre lo que el usuario busca y un listing."""

    def score(self, user: UserProfile, listing: Listing) -> StructuredScore:
        return self.score_looking_for(user.looking_for, listing)

    def score_looking_for(self, looking_for: LookingFor, listing: Listing) -> StructuredScore:
        candidates = [
            ("rent", RENT_WEIGHT, rent_points(looking_for.max_cold_rent, listing.cold_rent)),
            ("rooms", ROOMS_WEIGHT, room_points(looking_for.min_rooms, listing.rooms)),
            ("district", DISTRICT_WEIGHT, district_points(looking_for.districts, listing.district)),
            ("type", TYPE_WEIGHT, type_points(looking_for.type, listing.type)),
            ("size", SIZE_WEIGHT, size_points(looking_for.min_square_meters, listing.square_meters)),
        ]
        criteria = [
            CriterionScore(name=name, points=points, weight=weight)
            for name, weight, points in candidates
            if points is not None
        ]

        max_possible = sum(c.weight for c in criteria)
        if max_possible == 0:
            return StructuredScore(percentage=0.0, criteria=criteria)

        percentage = 100 * sum(c.points for c in criteria) / max_possible
        return StructuredScore(percentage=percentage, criteria=criteria)
