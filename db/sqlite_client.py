# db/sqlite_client.py
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from config import SQLITE_PATH, QUERY_TIMEOUT
from db.base import Driver


def _adapt(value: Any) -> Any:
    # sqlite3 binds only int/float/str/bytes/None
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat(" ") if isinstance(value, datetime) else value.isoformat()
    return value


class SqliteDriver(Driver):
    limit_style = "limit"
    identity_sql = "SELECT last_insert_rowid()"
    schema_sql = (
        "SELECT name AS COLUMN_NAME, dflt_value AS COLUMN_DEFAULT, "
        "CASE \"notnull\" WHEN 0 THEN 'YES' ELSE 'NO' END AS IS_NULLABLE, "
        "type AS DATA_TYPE FROM pragma_table_info(@0) ORDER BY cid"
    )

    def __init__(self, path: Optional[str] = None, timeout: float = QUERY_TIMEOUT):
        self.path = path or SQLITE_PATH
        self.timeout = timeout

    def connect(self):
        # autocommit mode; batches issue an explicit BEGIN
        return sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)

    def translate(self, sql, args):
        return super().translate(sql, [_adapt(v) for v in args])

    def begin(self, raw):
        raw.execute("BEGIN")
