# db/databricks_client.py
import logging
from typing import Optional

from databricks.sql import connect

from config import DATABRICKS_HOST, DATABRICKS_HTTP_PATH, DATABRICKS_TOKEN, QUERY_TIMEOUT, LOG_LEVEL
from db.base import Driver

LOG = logging.getLogger(__name__)
LOG.setLevel(LOG_LEVEL)


class DatabricksDriver(Driver):
    """
    Databricks SQL warehouse driver.

    Native :name parameters are used for bound values. The warehouse has no
    multi-statement transactions and no identity read-back, so commit is a
    no-op and a failed batch cannot be undone.
    """

    limit_style = "limit"
    identity_sql = None

    def __init__(self, host: Optional[str] = None, http_path: Optional[str] = None,
                 token: Optional[str] = None, timeout=QUERY_TIMEOUT):
        self.host = host or DATABRICKS_HOST
        self.http_path = http_path or DATABRICKS_HTTP_PATH
        self.token = token or DATABRICKS_TOKEN
        self.timeout = timeout

    def connect(self):
        return connect(server_hostname=self.host, http_path=self.http_path,
                       access_token=self.token, _socket_timeout=self.timeout)

    def schema_query(self, table):
        """
        Columns for `table`, which may be 'table', 'schema.table' or
        'catalog.schema.table' (e.g. 'gold.churn_rate').
        """
        parts = table.split(".")
        source = "information_schema.columns"
        if len(parts) == 3:
            source = f"{parts[0]}.{source}"
        sql = (
            "SELECT column_name, column_default, is_nullable, data_type "
            f"FROM {source} WHERE table_name = @0"
        )
        args = [parts[-1]]
        if len(parts) > 1:
            sql += " AND table_schema = @1"
            args.append(parts[-2])
        return sql + " ORDER BY ordinal_position", args

    def commit(self, raw):
        pass

    def rollback(self, raw):
        LOG.warning("Databricks has no transaction rollback; statements already run in this batch stay applied")
