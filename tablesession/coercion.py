"""Turning free-text cell input into typed values, and back."""

import json
import math
from typing import Any

from tablesession.types import Scalar

NULL_TOKEN = "null"


def coerce(raw: str) -> Scalar:
    """
    Parse raw cell or insert input into a scalar.

    Rules, applied to the trimmed text in order:
    - empty or ``null`` (any case) -> None
    - ``true`` / ``false`` (any case) -> bool
    - anything Python's numeric parser accepts -> int or float (NaN excluded)
    - otherwise the trimmed text itself

    The target column's type is not consulted. A text column therefore cannot
    receive ``"123"`` through this path; the database reports such mismatches.
    """
    trimmed = raw.strip()
    lowered = trimmed.lower()

    if not trimmed or lowered == NULL_TOKEN:
        return None
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    number = _parse_number(trimmed)
    if number is not None:
        return number
    return trimmed


def _parse_number(text: str):
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def to_text(value: Any) -> str:
    """Canonical text for a value; ``coerce(to_text(v))`` gives ``v`` back."""
    if value is None:
        return NULL_TOKEN
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def display_text(value: Any) -> str:
    """Text a cell editor starts from: blank for NULL, JSON for objects."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_sql_text(value: Any):
    """Textual form bound as a statement parameter; NULL stays None."""
    if value is None:
        return None
    return display_text(value)
