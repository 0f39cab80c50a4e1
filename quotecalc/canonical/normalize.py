"""Name normalization and boundary coercion helpers.

`normalize_name` must be applied identically at snapshot capture time
(to populate `normalized_name`) and at quote time (to build the lookup key).
"""

from __future__ import annotations

import math
import re
from typing import Any

_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_WEIGHT_PATTERN = re.compile(r"(kg|kgs|\(kgs\)|kilogram)", re.IGNORECASE)

DEFAULT_UNIT = "unit"
WEIGHT_UNIT = "kg"


def normalize_name(name: str | None) -> str:
    """Reduce a free-text item name to a canonical lookup key.

    Lower-cases, replaces anything that is not an ASCII letter, digit or
    whitespace with a space, then collapses and trims whitespace.

    Args:
        name: Free-text item description

    Returns:
        Normalized key ("" for empty or missing input)
    """
    if not name:
        return ""

    text = str(name).lower()
    text = _NON_ALNUM_PATTERN.sub(" ", text)
    text = _WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


def infer_unit(name: str | None) -> str:
    """Infer a default unit from an item name.

    Returns "kg" when a weight marker (kg, kgs, (kgs), kilogram) appears
    anywhere in the name, otherwise the generic "unit".
    """
    if name and _WEIGHT_PATTERN.search(str(name)):
        return WEIGHT_UNIT
    return DEFAULT_UNIT


def to_number(value: Any, thousands: bool = False) -> float | None:
    """Coerce a loosely-typed value to a finite float.

    Strings are stripped of whitespace first. Thousands separators are only
    dropped when `thousands` is set (sheet price cells such as "1,234.50").
    Booleans, non-numeric and non-finite values give None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        cleaned = value.strip()
        if thousands:
            cleaned = cleaned.replace(",", "")
        if not cleaned:
            return None
        value = cleaned

    try:
        number = float(value)
    except (TypeError, ValueError):
        return None

    if not math.isfinite(number):
        return None
    return number


def coerce_quantity(value: Any) -> float | None:
    """Requested quantity as a finite positive number, or None if invalid."""
    number = to_number(value)
    if number is None or number <= 0:
        return None
    return number


def coerce_price(value: Any) -> float:
    """Catalog price as a non-negative number; gaps and garbage become 0."""
    number = to_number(value, thousands=True)
    if number is None or number < 0:
        return 0.0
    return number


def clean_text(value: Any) -> str | None:
    """Stringify and strip a cell value; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
