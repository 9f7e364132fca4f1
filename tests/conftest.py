import sqlite3

import pytest

from db.base import Driver
from db.sqlite_client import SqliteDriver
from dynamic_model import DynamicModel
from models import ColumnMeta, ModelConfig, TableBinding

ORDERS_DDL = """
CREATE TABLE orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    number TEXT NOT NULL,
    status TEXT,
    total DECIMAL(10, 2),
    created TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

ORDERS_SCHEMA = [
    ColumnMeta("id", None, True, "INTEGER"),
    ColumnMeta("number", None, False, "TEXT"),
    ColumnMeta("status", None, True, "TEXT"),
    ColumnMeta("total", None, True, "DECIMAL(10, 2)"),
    ColumnMeta("created", "CURRENT_TIMESTAMP", True, "TIMESTAMP"),
]


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self.rowcount = -1
        self._rows = []

    def execute(self, sql, params=None):
        self.conn.log.append((sql, dict(params or {})))
        if self.conn.fail_on and self.conn.fail_on in sql:
            raise sqlite3.OperationalError("scripted failure")
        result = self.conn.results.pop(0) if self.conn.results else []
        if isinstance(result, int):
            self.rowcount = result
            return
        if result:
            cols = list(result[0].keys())
            self.description = [(c, None, None, None, None, None, None) for c in cols]
            self._rows = [tuple(r[c] for c in cols) for r in result]
        else:
            self.description = []

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def close(self):
        self.conn.cursors_closed += 1


class FakeConnection:
    def __init__(self, driver):
        self.log = driver.log
        self.results = driver.results
        self.fail_on = driver.fail_on
        self.cursors_closed = 0
        self.closed = False
        self.committed = False
        self.rolled_back = False
        driver.connections.append(self)

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class RecordingDriver(Driver):
    """Scripted DB-API driver: `results` holds one entry per executed statement,
    a list of row dicts for queries or an int rowcount for mutations."""

    def __init__(self, results=None, limit_style="top", identity_sql="SELECT @@IDENTITY AS newID"):
        self.results = list(results or [])
        self.log = []
        self.connections = []
        self.fail_on = None
        self.limit_style = limit_style
        self.identity_sql = identity_sql

    def connect(self):
        return FakeConnection(self)

    @property
    def statements(self):
        return [sql for sql, _ in self.log]


@pytest.fixture
def recording_driver():
    return RecordingDriver()


@pytest.fixture
def fake_orders(recording_driver):
    model = DynamicModel(ModelConfig(driver=recording_driver,
                                     binding=TableBinding("orders", "id", "number")))
    model.schema_cache.set_table_schema(ORDERS_SCHEMA)
    return model


@pytest.fixture
def sqlite_driver(tmp_path):
    driver = SqliteDriver(str(tmp_path / "orders.sqlite3"))
    conn = driver.connect()
    conn.execute(ORDERS_DDL)
    conn.close()
    return driver


@pytest.fixture
def orders(sqlite_driver):
    return DynamicModel(ModelConfig(driver=sqlite_driver,
                                    binding=TableBinding("orders", "id", "number")))


@pytest.fixture
def seeded(orders):
    rows = [
        ("A-1", "open", "10.50"),
        ("A-2", "closed", "20.00"),
        ("A-3", "open", "5.25"),
        ("A-4", "open", "7.00"),
        ("A-5", "closed", "1.00"),
    ]
    for number, status, total in rows:
        orders.execute_sql("INSERT INTO orders (number, status, total) VALUES (@0, @1, @2)",
                           number, status, total)
    return orders
