# config.py
# Edit these values directly (or set via env)
import os

QUERY_TIMEOUT = int(os.getenv("DAL_QUERY_TIMEOUT", "120"))   # seconds

# Databricks SQL warehouse
DATABRICKS_HOST = os.getenv("DATABRICKS_HOST", "")
DATABRICKS_HTTP_PATH = os.getenv("DATABRICKS_HTTP_PATH", "")
DATABRICKS_TOKEN = os.getenv("DATABRICKS_TOKEN", "")    # PAT you created

# Local SQLite file used when no path is given to SqliteDriver
SQLITE_PATH = os.getenv("DAL_SQLITE_PATH", "dal.sqlite3")

# Paging
DEFAULT_PAGE_SIZE = 20
DEFAULT_CURRENT_PAGE = 1

# Guard the first schema load with a lock (concurrent first access)
SCHEMA_CACHE_LOCKING = True

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_LEVEL = os.getenv("DAL_LOG_LEVEL", "INFO").upper()
if LOG_LEVEL not in LOG_LEVELS:
    LOG_LEVEL = "INFO"
