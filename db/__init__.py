# db/__init__.py
from db.base import Driver, DbConnection, DbStatement
from db.sqlite_client import SqliteDriver

__all__ = ["Driver", "DbConnection", "DbStatement", "SqliteDriver"]
