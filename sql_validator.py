# sql_validator.py
# Opt-in identifier checks (ModelConfig.validate_identifiers). By default
# table/column names are trusted and pasted into SQL as given; where/join
# fragments are always trusted.
import re
from typing import Tuple

from errors import UsageError

# plain or dotted names: id, created_at, gold.churn_rate
IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
ORDER_TERM_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_\.]*)(\s+(asc|desc))?$", re.IGNORECASE)


def is_safe_identifier(name: str) -> Tuple[bool, str]:
    if not name or not str(name).strip():
        return False, "empty identifier"
    if not IDENT_RE.match(str(name).strip()):
        return False, f"invalid identifier: {name}"
    return True, "ok"


def check_identifier(name: str) -> str:
    ok, msg = is_safe_identifier(name)
    if not ok:
        raise UsageError(msg)
    return name


def check_columns(columns: str) -> str:
    """'*' or a comma separated list of identifiers."""
    if columns is None or columns.strip() == "*":
        return columns
    for part in columns.split(","):
        check_identifier(part.strip())
    return columns


def check_order_by(order_by: str) -> str:
    text = (order_by or "").strip()
    if text.lower().startswith("order by"):
        text = text[len("order by"):]
    for term in text.split(","):
        if not ORDER_TERM_RE.match(term.strip()):
            raise UsageError(f"invalid order term: {term.strip()}")
    return order_by
