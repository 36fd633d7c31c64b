"""Stable row identities derived from primary key values."""

import json
from typing import Any, List, Sequence

# JSON escapes every control character, so this never occurs inside an
# encoded value.
DELIMITER = "\x01"


def _normalize(value: Any) -> Any:
    # 5 and 5.0 are the same key value and must encode the same way
    if isinstance(value, float) and not isinstance(value, bool):
        if value.is_integer():
            return int(value)
    return value


def encode_value(value: Any) -> str:
    """Canonical encoding of a single key value."""
    return json.dumps(
        _normalize(value),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


def primary_key_values(
    row: Sequence[Any],
    primary_key_columns: Sequence[str],
    column_names: Sequence[str],
) -> List[Any]:
    """Pick the primary key cells out of a positional row, in key order."""
    values = []
    for column in primary_key_columns:
        try:
            index = column_names.index(column)
        except ValueError:
            values.append(None)
            continue
        values.append(row[index] if index < len(row) else None)
    return values


def identity_of(
    row: Sequence[Any],
    primary_key_columns: Sequence[str],
    column_names: Sequence[str],
) -> str:
    """
    Composite identity string for a row.

    Rows with equal primary key values always get equal identities, whatever
    their other cells hold. Returns an empty string when there is no primary
    key; such rows cannot be selected or edited.
    """
    if not primary_key_columns:
        return ""
    values = primary_key_values(row, primary_key_columns, column_names)
    return DELIMITER.join(encode_value(value) for value in values)


def decode_identity(identity: str) -> List[Any]:
    """Recover the primary key values an identity was built from."""
    if not identity:
        return []
    return [json.loads(part) for part in identity.split(DELIMITER)]
