# normalizer.py
# Turns whatever a caller hands us (dicts, key/value pairs, plain objects,
# web-form MultiDicts) into a Record whitelisted against the table schema.

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Tuple

import dateparser
from werkzeug.datastructures import MultiDict

from models import ColumnMeta, Record

INT_TYPES = {"int", "integer", "bigint", "smallint", "tinyint", "mediumint"}
DECIMAL_TYPES = {"decimal", "numeric", "money", "smallmoney"}
FLOAT_TYPES = {"float", "real", "double", "double precision"}
BOOL_TYPES = {"bit", "bool", "boolean"}
TRUE_TOKENS = {"1", "true", "on", "yes", "y"}


def _base_type(data_type: Optional[str]) -> str:
    # "DECIMAL(10, 2)" -> "decimal", "varchar(50)" -> "varchar"
    return re.sub(r"\(.*\)", "", (data_type or "")).strip().lower()


def iter_pairs(source: Any) -> Iterable[Tuple[str, Any]]:
    """Natural key/value enumeration for the supported input shapes."""
    if isinstance(source, MultiDict):
        # like a posted form: several values for one key are comma-joined
        for key, values in source.lists():
            yield key, ",".join(str(v) for v in values)
    elif hasattr(source, "items"):
        yield from source.items()
    elif hasattr(source, "_asdict"):
        yield from source._asdict().items()
    elif isinstance(source, (list, tuple)):
        for key, value in source:
            yield key, value
    elif hasattr(source, "__dict__"):
        for key, value in vars(source).items():
            if not key.startswith("_"):
                yield key, value
    else:
        raise TypeError(f"can't read fields from {type(source).__name__}")


def coerce_form_value(column: ColumnMeta, raw: Any) -> Any:
    """Convert posted form text to the column's type. Text that doesn't parse is
    returned unchanged so validation (or the database) can report it."""
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if text == "" and column.nullable:
        return None
    base = _base_type(column.data_type)
    try:
        if base in INT_TYPES:
            return int(text)
        if base in DECIMAL_TYPES:
            return Decimal(text)
        if base in FLOAT_TYPES:
            return float(text)
    except (ValueError, InvalidOperation):
        return raw
    if base in BOOL_TYPES:
        return text.lower() in TRUE_TOKENS
    if "date" in base or "time" in base:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = dateparser.parse(text)
        if parsed is None:
            return raw
        return parsed.date() if base == "date" else parsed
    return raw


def normalize(source: Any, schema, coerce: Optional[bool] = None) -> Record:
    """
    Record holding only the keys that name a schema column (matched
    case-insensitively, stored under the schema's spelling), in the source's
    own order.
    """
    if coerce is None:
        coerce = isinstance(source, MultiDict)
    record: Record = {}
    for key, value in iter_pairs(source):
        column = schema.find(key)
        if column is None:
            continue
        record[column.name] = coerce_form_value(column, value) if coerce else value
    return record


def has_primary_key(source: Any, schema, primary_key: str) -> bool:
    return primary_key_of(source, schema, primary_key)[0]


def get_primary_key(source: Any, schema, primary_key: str) -> Any:
    return primary_key_of(source, schema, primary_key)[1]


def primary_key_of(source: Any, schema, primary_key: str) -> Tuple[bool, Any]:
    record = normalize(source, schema)
    wanted = primary_key.lower()
    for key, value in record.items():
        if key.lower() == wanted:
            return True, value
    return False, None
