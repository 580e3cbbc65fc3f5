"""
Parsing de campos numéricos ingresados como texto libre.

Los formularios guardan rooms/rent/size como strings tal cual los
escribió el usuario ("1.200 €", "2,5", ""). Se parsean una sola vez al
construir el modelo; si no se puede parsear, el criterio queda ausente.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

_THOUSANDS_DOT = re.compile(r"^\d{1,3}(\.\d{3})+$")
_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)*")


def parse_number(value: Any) -> Optional[float]:
    """
    Convierte un valor de formulario a float.

    Acepta formato alemán ("1.200,50") e inglés ("1200.50").
    Devuelve None si no hay número reconocible.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    match = _NUMBER.search(str(value).strip())
    if not match:
        return None

    raw = match.group(0)
    if "." in raw and "," in raw:
        raw = raw.replace(".", "").replace(",", ".")
    elif "," in raw:
        raw = raw.replace(",", ".")
    elif _THOUSANDS_DOT.match(raw.lstrip("-")):
        raw = raw.replace(".", "")

    try:
        return float(raw)
    except ValueError:
        return None


def parse_optional_float(value: Any) -> Optional[float]:
    return parse_number(value)


def parse_optional_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    if number is None:
        return None
    return int(number)


def parse_bool(value: Any) -> bool:
    """Normaliza flags que a veces llegan como "true"/"ja"/"1"."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in {"true", "yes", "ja", "1", "y", "si"}


def round_half_up(value: Any) -> int:
    """Redondeo comercial (x.5 sube), sin el redondeo bancario de round()."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
