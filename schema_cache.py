# schema_cache.py
import logging
import threading
import uuid
from datetime import date
from typing import Any, List, Optional

from config import SCHEMA_CACHE_LOCKING, LOG_LEVEL
from models import ColumnMeta

LOG = logging.getLogger(__name__)
LOG.setLevel(LOG_LEVEL)

# default expressions, lowercased with outer parentheses removed
TIMESTAMP_DEFAULTS = {
    "getdate()", "getutcdate()", "sysdatetime()", "sysutcdatetime()",
    "current_timestamp", "current_timestamp()", "current_date", "now()",
    "localtimestamp",
}
IDENTIFIER_DEFAULTS = {"newid()", "newsequentialid()", "uuid()", "gen_random_uuid()"}


class SchemaCache:
    """
    Column metadata for one table, read from the information schema on first
    use and kept for the lifetime of the owning model.
    """

    def __init__(self, executor, table: str, locking: bool = SCHEMA_CACHE_LOCKING):
        self.executor = executor
        self.table = table
        self._columns: Optional[List[ColumnMeta]] = None
        self._lock = threading.Lock() if locking else None

    def get_columns(self) -> List[ColumnMeta]:
        if self._columns is not None:
            return self._columns
        if self._lock is None:
            self._columns = self._load()
            return self._columns
        with self._lock:
            if self._columns is None:
                self._columns = self._load()
        return self._columns

    def _load(self) -> List[ColumnMeta]:
        # driver errors propagate; nothing is cached on failure
        sql, args = self.executor.driver.schema_query(self.table)
        columns = [ColumnMeta.from_row(row) for row in self.executor.query(sql, args)]
        LOG.info("Loaded schema for %s (%d columns)", self.table, len(columns))
        return columns

    def set_table_schema(self, columns: List[ColumnMeta]) -> None:
        """Manual cache setter (useful for tests)."""
        self._columns = list(columns)

    def find(self, name: str) -> Optional[ColumnMeta]:
        """Case-insensitive column lookup."""
        key = str(name).lower()
        for column in self.get_columns():
            if column.name.lower() == key:
                return column
        return None


def _strip_outer_parens(expr: str) -> str:
    while expr.startswith("(") and expr.endswith(")"):
        expr = expr[1:-1].strip()
    return expr


def default_value(column: ColumnMeta) -> Any:
    """
    Runtime value for a column's default expression: today's date for
    timestamp functions, a fresh uuid for identifier functions, otherwise the
    raw expression with its parentheses removed. No default -> None.
    """
    raw = column.default
    if raw is None or str(raw) == "":
        return None
    expr = _strip_outer_parens(str(raw).strip()).lower()
    if expr in TIMESTAMP_DEFAULTS:
        return date.today().isoformat()
    if expr in IDENTIFIER_DEFAULTS:
        return str(uuid.uuid4())
    return str(raw).replace("(", "").replace(")", "")
