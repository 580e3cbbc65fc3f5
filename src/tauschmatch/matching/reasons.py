"""
Razones estructuradas (bullets) de un match.

Dos funciones puras, una por sentido del intercambio:

- their_apartment_reasons: lo que el usuario busca vs lo que el listing
  tiene. Nunca menciona la vivienda del usuario.
- your_apartment_reasons: lo que el usuario tiene vs lo que el autor del
  listing busca. Nunca describe la vivienda actual del listing.
"""

import re
import unicodedata
from typing import Optional

from tauschmatch.matching.criteria_inference import (
    CriteriaInference,
    KeywordCriteriaInference,
    SoughtCriteria,
)
from tauschmatch.matching.structured_scorer import (
    is_exact_district,
    related_district,
    rent_points,
    room_points,
)
from tauschmatch.models import ExtractedPreferences, Listing, UserProfile

MAX_REASONS = 6
INFERRED_SUFFIX = " (inferred)"

# Umbral de "razonablemente bueno" en puntos de alquiler (ratio >= 0.9)
RENT_REASON_MIN_POINTS = 22
ROOM_REASON_MIN_DIFF = -1
ROOM_REASON_MAX_DIFF = 2

# Evidencia en el texto del listing para cada preferencia de estilo de vida.
# (flag, keywords, bullet)
FLAVOR_RULES: list[tuple[str, list[str], str]] = [
    (
        "near_public_transport",
        [r"u-?bahn", r"s-?bahn", r"\btram\b", r"\bbus\b", r"public transport", r"\bstation\b", r"anbindung"],
        "Good public transport connections, which you asked for",
    ),
    (
        "near_parks",
        [r"\bpark\w*", r"\bgrun\w*", r"\bgreen\b", r"\bgarden\b", r"\bgarten\b", r"volkspark"],
        "Close to parks and green spaces, as you wanted",
    ),
    (
        "quiet",
        [r"\bruhig\w*", r"\bquiet\b", r"\bcalm\b", r"hinterhaus", r"seitenflugel", r"\bpeaceful\b"],
        "Described as quiet, which matches your wish for calm",
    ),
    (
        "family_friendly",
        [r"\bfamil\w*", r"\bkinder\w*", r"\bkita\b", r"\bschule\w*", r"\bschool\w*", r"spielplatz", r"playground"],
        "Family-friendly surroundings, as you asked for",
    ),
    (
        "near_shopping",
        [r"supermarkt", r"supermarket", r"\bshops?\b", r"\bshopping\b", r"einkauf\w*"],
        "Shops nearby, which you asked for",
    ),
    (
        "near_restaurants",
        [r"restaurant\w*", r"\bcafes?\b", r"\bbars?\b", r"kneipe\w*"],
        "Restaurants and cafes nearby, as you wanted",
    ),
]


def format_number(value: float) -> str:
    """950.0 -> '950', 2.5 -> '2.5'."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _euros(value: float) -> str:
    return f"€{format_number(value)}"


def _normalize(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text or "")
    return normalized.encode("ascii", "ignore").decode("ascii").lower()


def _has_evidence(text: str, patterns: list[str]) -> bool:
    return any(re.search(pattern, text) for pattern in patterns)


def their_apartment_reasons(
    user: UserProfile,
    listing: Listing,
    preferences: Optional[ExtractedPreferences] = None,
) -> list[str]:
    """Bullets de por qué el departamento del listing le sirve al usuario."""
    wants = user.looking_for
    reasons: list[str] = []

    points = rent_points(wants.max_cold_rent, listing.cold_rent)
    if points is not None and points >= RENT_REASON_MIN_POINTS:
        if listing.cold_rent <= wants.max_cold_rent:
            reasons.append(
                f"Within your budget: {_euros(listing.cold_rent)} "
                f"(your max: {_euros(wants.max_cold_rent)})"
            )
        else:
            reasons.append(
                f"Close to your budget: {_euros(listing.cold_rent)} "
                f"(your max: {_euros(wants.max_cold_rent)})"
            )

    if room_points(wants.min_rooms, listing.rooms) is not None:
        diff = listing.rooms - wants.min_rooms
        if ROOM_REASON_MIN_DIFF <= diff <= ROOM_REASON_MAX_DIFF:
            reasons.append(
                f"{format_number(listing.rooms)} rooms "
                f"(you want at least {format_number(wants.min_rooms)})"
            )

    if wants.districts and listing.district:
        if is_exact_district(wants.districts, listing.district):
            reasons.append(f"In your preferred district: {listing.district}")
        else:
            related = related_district(wants.districts, listing.district)
            if related:
                reasons.append(
                    f"In {listing.district}, related to your preferred district {related}"
                )

    if wants.type and listing.type and wants.type.strip().casefold() == listing.type.strip().casefold():
        reasons.append(f"Matches your preferred type: {listing.type}")

    if (
        wants.min_square_meters
        and listing.square_meters
        and listing.square_meters >= wants.min_square_meters
    ):
        reasons.append(
            f"{format_number(listing.square_meters)} m² "
            f"(your minimum: {format_number(wants.min_square_meters)} m²)"
        )

    if wants.balcony and listing.balcony_or_terrace:
        reasons.append("Has a balcony or terrace, as you wanted")

    if wants.pets_allowed and listing.pets_allowed:
        reasons.append("Pets are allowed, as you wanted")

    if preferences is not None:
        offered_text = _normalize(" ".join([listing.description, *listing.features]))
        for flag, patterns, bullet in FLAVOR_RULES:
            if getattr(preferences, flag) and _has_evidence(offered_text, patterns):
                reasons.append(bullet)

    return reasons[:MAX_REASONS]


def _mentions_district(user: UserProfile, district: str) -> bool:
    haystack = _normalize(f"{user.my_apartment.address} {user.my_apartment.description}")
    needle = _normalize(district)
    return bool(needle) and re.search(rf"\b{re.escape(needle)}\b", haystack) is not None


def your_apartment_reasons(
    user: UserProfile,
    listing: Listing,
    inference: Optional[CriteriaInference] = None,
    sought: Optional[SoughtCriteria] = None,
) -> list[str]:
    """
    Bullets de por qué el departamento del usuario le sirve al autor del listing.

    Los criterios del autor salen de CriteriaInference. Cuando sólo se
    pudieron deducir de su vivienda actual, cada bullet lleva el sufijo
    "(inferred)" y se redacta sobre el usuario, sin describir el listing.
    """
    if sought is None:
        sought = (inference or KeywordCriteriaInference()).infer(listing)

    mine = user.my_apartment
    verb = "likely want" if sought.is_inferred else "want"
    reasons: list[str] = []

    if mine.rooms and sought.min_rooms and mine.rooms >= sought.min_rooms:
        reasons.append(
            f"You have {format_number(mine.rooms)} rooms, "
            f"and they {verb} at least {format_number(sought.min_rooms)}"
        )

    if (
        mine.square_meters
        and sought.min_square_meters
        and mine.square_meters >= sought.min_square_meters
    ):
        reasons.append(
            f"You have {format_number(mine.square_meters)} m², "
            f"and they {verb} at least {format_number(sought.min_square_meters)} m²"
        )

    if mine.cold_rent and sought.max_cold_rent and mine.cold_rent <= sought.max_cold_rent:
        reasons.append(
            f"Your rent of {_euros(mine.cold_rent)} fits their budget "
            f"of {_euros(sought.max_cold_rent)}"
        )

    for district in sought.districts:
        if _mentions_district(user, district):
            reasons.append(f"Your apartment is in {district}, where they {verb} to live")
            break

    if sought.wants_balcony and mine.balcony:
        reasons.append(f"You have a balcony, and they {verb} one")

    if sought.wants_pets and mine.pets_allowed:
        reasons.append(f"Your apartment allows pets, and they {verb} a pet-friendly place")

    if sought.is_inferred:
        reasons = [reason + INFERRED_SUFFIX for reason in reasons]

    return reasons[:MAX_REASONS]
