"""
Database connection and schema management
One DuckDB connection per DatabaseManager, guarded by a re-entrant lock so
request threads never share the connection concurrently.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import duckdb

from .exceptions import BaseApplicationError, ConcurrencyError, DatabaseError
from ..config.settings import settings

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

SCHEMA_SQL = r"""
CREATE SEQUENCE IF NOT EXISTS hostels_id_seq;
CREATE TABLE IF NOT EXISTS hostels (
  id INTEGER DEFAULT nextval('hostels_id_seq') PRIMARY KEY,
  hostel_slug TEXT UNIQUE NOT NULL,
  name TEXT NOT NULL,
  admin_user_id TEXT NOT NULL,
  timezone TEXT,
  created_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS residents (
  id TEXT PRIMARY KEY,
  hostel_id INTEGER,
  name TEXT,
  room TEXT,
  created_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS staff_roles_id_seq;
CREATE TABLE IF NOT EXISTS hostel_staff_roles (
  id INTEGER DEFAULT nextval('staff_roles_id_seq') PRIMARY KEY,
  hostel_id INTEGER NOT NULL,
  title TEXT NOT NULL,
  view_meals BOOLEAN DEFAULT FALSE,
  manage_meals BOOLEAN DEFAULT FALSE,
  created_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS hostel_staff (
  staff_member_id TEXT PRIMARY KEY,
  role_id INTEGER NOT NULL,
  created_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS hostel_meals_id_seq;
CREATE TABLE IF NOT EXISTS hostel_meals (
  id INTEGER DEFAULT nextval('hostel_meals_id_seq') PRIMARY KEY,
  hostel_id INTEGER NOT NULL,
  name TEXT NOT NULL,
  timing TEXT NOT NULL,
  weekdays INTEGER[] NOT NULL,
  status_deadline DOUBLE NOT NULL,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_hostel_meals_hostel ON hostel_meals(hostel_id);

CREATE SEQUENCE IF NOT EXISTS weekly_menu_id_seq;
CREATE TABLE IF NOT EXISTS hostel_weekly_menu (
  id INTEGER DEFAULT nextval('weekly_menu_id_seq') PRIMARY KEY,
  hostel_meal_id INTEGER NOT NULL,
  food TEXT NOT NULL,
  weekdays INTEGER[] NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_weekly_menu_meal ON hostel_weekly_menu(hostel_meal_id);

CREATE TABLE IF NOT EXISTS residents_weekly_meal_status (
  resident_id TEXT NOT NULL,
  meal_id INTEGER NOT NULL,
  is_opted_weekdays INTEGER[] NOT NULL,
  not_opted_weekdays INTEGER[] NOT NULL,
  updated_at TIMESTAMP DEFAULT now(),
  PRIMARY KEY (resident_id, meal_id)
);

CREATE TABLE IF NOT EXISTS resident_meal_overrides (
  resident_id TEXT NOT NULL,
  meal_id INTEGER NOT NULL,
  meal_date DATE NOT NULL,
  is_opted BOOLEAN NOT NULL,
  updated_at TIMESTAMP DEFAULT now(),
  PRIMARY KEY (resident_id, meal_id, meal_date)
);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id TEXT,
  actor_id TEXT,
  action TEXT,
  detail_json TEXT,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_actor ON logs(actor_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


def resolve_db_path(database_url: str) -> str:
    """Turn a duckdb:// URL into a path duckdb.connect accepts"""
    path = database_url
    if path.startswith("duckdb://"):
        path = path[len("duckdb://"):]
    if path in (MEMORY_PATH, "/" + MEMORY_PATH, ""):
        return MEMORY_PATH
    return path


class DatabaseManager:
    """Owns the DuckDB connection, the schema and transaction boundaries"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._depth = 0
        self.db_path = db_path or resolve_db_path(settings.database_url)

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        with self._lock:
            if self._connection is None:
                if self.db_path != MEMORY_PATH:
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._connection = duckdb.connect(self.db_path)
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        try:
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        self.get_connection()
        logger.info("database ready at %s", self.db_path)

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        Transaction context manager.

        Holds the manager lock for its whole body, so a read followed by a
        write inside one block cannot interleave with another request in this
        process. Nested blocks join the outer transaction.

        Application errors raised inside roll back and propagate unchanged;
        database errors are wrapped in DatabaseError.
        """
        with self._lock:
            conn = self.connection
            if self._depth > 0:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            conn.execute("BEGIN TRANSACTION")
            self._depth = 1
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseApplicationError:
                self._rollback(conn)
                raise
            except duckdb.Error as e:
                self._rollback(conn)
                if "conflict" in str(e).lower():
                    raise ConcurrencyError("Concurrent update, retry the request")
                raise DatabaseError(f"Database operation failed: {e}")
            except Exception:
                self._rollback(conn)
                raise
            finally:
                self._depth = 0

    def _rollback(self, conn: duckdb.DuckDBPyConnection):
        try:
            conn.execute("ROLLBACK")
        except duckdb.Error:
            logger.warning("rollback failed", exc_info=True)

    def execute_query(self, query: str, params: list = None) -> list:
        with self._lock:
            try:
                return self.connection.execute(query, params or []).fetchall()
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        with self._lock:
            try:
                return self.connection.execute(query, params or []).fetchone()
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dicts(self, query: str, params: list = None) -> List[Dict[str, Any]]:
        """Run a query and return rows keyed by column name"""
        with self._lock:
            try:
                cursor = self.connection.execute(query, params or [])
                columns = [d[0] for d in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dict(self, query: str, params: list = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_dicts(query, params)
        return rows[0] if rows else None
