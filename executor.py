# executor.py
import logging
from typing import Any, Iterable, Iterator, Optional, Sequence, Union

import config
from models import Record, Statement

LOG = logging.getLogger(__name__)
LOG.setLevel(config.LOG_LEVEL)


def first(rows: Iterable[Record]) -> Optional[Record]:
    """First row of a lazy result (or None); releases the cursor either way."""
    it = iter(rows)
    try:
        return next(it, None)
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()


class QueryExecutor:
    """Runs statements through a driver. Every call gets its own connection."""

    def __init__(self, driver):
        self.driver = driver

    def query(self, sql: str, args: Sequence[Any] = ()) -> Iterator[Record]:
        """
        Lazily yield rows. Nothing touches the database until the first row is
        pulled; the connection is closed when the rows run out or the
        generator is closed/garbage collected.
        """
        conn = self.driver.open_connection()
        try:
            LOG.debug("query: %s args=%r", sql, list(args))
            reader = self.driver.prepare(conn, sql, args).execute_reader()
            try:
                for row in reader:
                    yield row
            finally:
                reader.close()
        finally:
            conn.close()

    def scalar(self, sql: str, args: Sequence[Any] = ()) -> Any:
        with self.driver.open_connection() as conn:
            LOG.debug("scalar: %s args=%r", sql, list(args))
            return self.driver.prepare(conn, sql, args).execute_scalar()

    def execute(self, statements: Union[Statement, Iterable[Statement]]) -> int:
        """Run statements in order inside one transaction; returns rows affected.
        Any failure rolls the whole batch back and is re-raised."""
        if isinstance(statements, Statement):
            statements = [statements]
        result = 0
        with self.driver.open_connection() as conn:
            conn.begin_transaction()
            try:
                for stmt in statements:
                    LOG.debug("execute: %s args=%r", stmt.sql, stmt.args)
                    affected = self.driver.prepare(conn, stmt.sql, stmt.args).execute_non_query()
                    # some drivers report -1 when the count is unknown
                    if affected and affected > 0:
                        result += affected
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return result

    def insert(self, statement: Statement) -> Any:
        """Run one INSERT and read back the generated key on the same connection.
        Returns None when the driver cannot report identities."""
        identity_sql = getattr(self.driver, "identity_sql", None)
        with self.driver.open_connection() as conn:
            conn.begin_transaction()
            try:
                LOG.debug("insert: %s args=%r", statement.sql, statement.args)
                self.driver.prepare(conn, statement.sql, statement.args).execute_non_query()
                new_id = None
                if identity_sql:
                    new_id = self.driver.prepare(conn, identity_sql).execute_scalar()
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        if identity_sql is None:
            LOG.info("driver %s has no identity read-back; primary key left unset",
                     type(self.driver).__name__)
        return new_id
