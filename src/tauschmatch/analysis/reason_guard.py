"""
Guardia de direccionalidad para las razones que devuelve el LLM.

El prompt pide no mezclar los dos sentidos del intercambio, pero el
modelo no siempre obedece. Acá se descartan los bullets que violan el
contrato:

- "whatYouHaveAndTheyWant" no puede describir la vivienda ACTUAL del
  autor del anuncio (solo lo que busca).
- "whatYouWantAndTheyHave" no puede describir la vivienda del usuario
  (solo lo que el usuario busca).
"""

import re

import structlog

logger = structlog.get_logger()


LISTING_CURRENT_STATE_PATTERNS: list[str] = [
    r"\bthey\s+(?:currently|already)\b",
    r"\bthey\s+(?:have|has|own|offer|offers|rent|live\s+in|are\s+living)\b",
    r"\btheir\s+(?:current|existing|present)\b",
    r"\btheir\s+(?:apartment|flat|place|home|wohnung|balcony|rooms?)\s+(?:has|have|is|offers|features|includes)\b",
    r"\bthey\s+(?:currently\s+)?(?:live|reside)\b",
]

USER_OWN_APARTMENT_PATTERNS: list[str] = [
    r"\byou\s+(?:currently|already)\s+(?:have|own|offer|rent|live|are\s+living)\b",
    # "what you have been looking for" habla del deseo, no de la vivienda
    r"\byou\s+(?:have|own|offer|rent|live\s+in|are\s+living)\b(?!\s+been\b)",
    r"\byour\s+(?:current|existing|own|present)\s+(?:apartment|flat|place|home|wohnung)\b",
    r"\byour\s+(?:apartment|flat|place|home|wohnung)\s+(?:has|have|is|offers|features|includes)\b",
]


def _violates(reason: str, patterns: list[str]) -> bool:
    return any(re.search(p, reason, flags=re.IGNORECASE) for p in patterns)


def filter_have_bucket(reasons: list[str]) -> tuple[list[str], list[str]]:
    """
    Filtra "lo que tenés y ellos quieren".

    Returns:
        (kept, dropped)
    """
    kept, dropped = [], []
    for reason in reasons:
        if _violates(reason, LISTING_CURRENT_STATE_PATTERNS):
            dropped.append(reason)
        else:
            kept.append(reason)
    return kept, dropped


def filter_want_bucket(reasons: list[str]) -> tuple[list[str], list[str]]:
    """
    Filtra "lo que querés y ellos tienen".

    Returns:
        (kept, dropped)
    """
    kept, dropped = [], []
    for reason in reasons:
        if _violates(reason, USER_OWN_APARTMENT_PATTERNS):
            dropped.append(reason)
        else:
            kept.append(reason)
    return kept, dropped


def enforce_directionality(
    listing_id: str,
    what_you_want_and_they_have: list[str],
    what_you_have_and_they_want: list[str],
) -> tuple[list[str], list[str]]:
    """Aplica ambos filtros y loguea lo descartado."""
    want_kept, want_dropped = filter_want_bucket(what_you_want_and_they_have)
    have_kept, have_dropped = filter_have_bucket(what_you_have_and_they_want)

    if want_dropped or have_dropped:
        logger.warning(
            "Razones con dirección incorrecta descartadas",
            listing_id=listing_id,
            want_dropped=want_dropped,
            have_dropped=have_dropped,
        )

    return want_kept, have_kept
