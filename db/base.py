# db/base.py
"""
Driver capability used by the executor.

A driver opens DB-API connections, prepares statements written with positional
@0, @1, ... placeholders and describes the few dialect differences the builder
cares about (row cap syntax, schema lookup, identity read-back).
"""

import re
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

import config

LOG = logging.getLogger(__name__)
LOG.setLevel(config.LOG_LEVEL)

# @0, @12 ... but not @@IDENTITY
PLACEHOLDER_RE = re.compile(r"(?<![@\w])@(\d+)\b")


class DbStatement:
    """One prepared statement bound to a connection. Runs once."""

    def __init__(self, connection: "DbConnection", sql: str, params: Dict[str, Any]):
        self.connection = connection
        self.sql = sql
        self.params = params

    def _cursor(self):
        cur = self.connection.raw.cursor()
        try:
            if self.params:
                cur.execute(self.sql, self.params)
            else:
                cur.execute(self.sql)
        except Exception:
            cur.close()
            raise
        return cur

    def execute_non_query(self) -> int:
        cur = self._cursor()
        try:
            return cur.rowcount
        finally:
            cur.close()

    def execute_scalar(self) -> Any:
        cur = self._cursor()
        try:
            row = cur.fetchone() if cur.description else None
            return row[0] if row else None
        finally:
            cur.close()

    def execute_reader(self) -> Iterator[Dict[str, Any]]:
        """Yield rows as dicts, one fetch at a time. The cursor closes when the
        generator is exhausted or closed."""
        cur = self._cursor()
        try:
            cols = [c[0] for c in cur.description] if cur.description else []
            while True:
                row = cur.fetchone()
                if row is None:
                    break
                yield dict(zip(cols, row))
        finally:
            cur.close()


class DbConnection:
    def __init__(self, driver: "Driver", raw):
        self.driver = driver
        self.raw = raw

    def begin_transaction(self) -> "DbConnection":
        self.driver.begin(self.raw)
        return self

    def commit(self):
        self.driver.commit(self.raw)

    def rollback(self):
        self.driver.rollback(self.raw)

    def close(self):
        self.raw.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class Driver(ABC):
    # "top" -> SELECT TOP n ..., "limit" -> ... LIMIT n
    limit_style = "top"
    identity_sql: Optional[str] = "SELECT @@IDENTITY AS newID"
    schema_sql = "SELECT * FROM INFORMATION_SCHEMA.COLUMNS WHERE TABLE_NAME = @0"

    @abstractmethod
    def connect(self):
        """Return a raw DB-API 2 connection."""

    def open_connection(self) -> DbConnection:
        return DbConnection(self, self.connect())

    def prepare(self, connection: DbConnection, sql: str, args: Sequence[Any] = ()) -> DbStatement:
        text, params = self.translate(sql, args)
        return DbStatement(connection, text, params)

    def translate(self, sql: str, args: Sequence[Any]) -> Tuple[str, Dict[str, Any]]:
        """Rewrite @n placeholders to the DB-API named style (:pn)."""
        text = PLACEHOLDER_RE.sub(lambda m: f":p{m.group(1)}", sql)
        return text, {f"p{i}": v for i, v in enumerate(args)}

    def schema_query(self, table: str) -> Tuple[str, list]:
        return self.schema_sql, [table]

    # transaction primitives; DB-API opens transactions implicitly
    def begin(self, raw):
        pass

    def commit(self, raw):
        raw.commit()

    def rollback(self, raw):
        raw.rollback()
