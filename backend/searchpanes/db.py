from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .config import settings
from .errors import DataAccessError
from .query import Query

logger = logging.getLogger(__name__)

_ENGINE_CACHE: Dict[str, Engine] = {}
_ENGINE_LOCK = threading.Lock()

# SQLAlchemy dialect names -> sqlglot dialect names
_DIALECTS = {
    "duckdb": "duckdb",
    "postgres": "postgres",
    "postgresql": "postgres",
    "mysql": "mysql",
    "mariadb": "mysql",
    "mssql": "tsql",
    "sqlserver": "tsql",
    "tsql": "tsql",
    "sqlite": "sqlite",
}


def normalize_dialect(dialect: Optional[str]) -> str:
    """Map an engine or user supplied dialect name to the sqlglot name."""
    d = (dialect or "").strip().lower()
    if d in _DIALECTS:
        return _DIALECTS[d]
    for prefix, name in _DIALECTS.items():
        if d.startswith(prefix):
            return name
    return "sqlite"


def get_engine_from_dsn(dsn: str) -> Engine:
    """Create (and cache) an engine from a SQLAlchemy DSN.

    Normalizes MySQL DSNs to pymysql. SQLite engines allow cross-thread use;
    in-memory SQLite shares a single connection so every checkout sees the
    same database.
    """
    d = (dsn or "").strip()
    low = d.lower()
    if low.startswith("mysql://"):
        d = "mysql+pymysql://" + d[len("mysql://"):]

    with _ENGINE_LOCK:
        eng = _ENGINE_CACHE.get(d)
        if eng is not None:
            return eng

        kwargs: dict = {"pool_pre_ping": True}
        if low.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if low in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        eng = create_engine(d, **kwargs)
        _ENGINE_CACHE[d] = eng
        logger.info("created engine for dialect=%s", eng.dialect.name)
        return eng


def dispose_engines() -> None:
    with _ENGINE_LOCK:
        for eng in _ENGINE_CACHE.values():
            try:
                eng.dispose()
            except SQLAlchemyError:
                logger.warning("engine dispose failed", exc_info=True)
        _ENGINE_CACHE.clear()


class ResultSet:
    """Rows of one executed query, fully materialised as dicts."""

    def __init__(self, rows: List[Dict[str, Any]], sql: str = ""):
        self._rows = rows
        self.sql = sql

    def fetch_all(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def fetch(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None

    def count(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)


class Database:
    """Database handle handed to editors: builds queries and runs SQL text."""

    def __init__(self, engine: Engine, dialect: Optional[str] = None):
        self.engine = engine
        self.dialect = normalize_dialect(dialect or settings.sql_dialect or engine.dialect.name)

    @classmethod
    def from_dsn(cls, dsn: Optional[str] = None, dialect: Optional[str] = None) -> "Database":
        return cls(get_engine_from_dsn(dsn or settings.database_url), dialect=dialect)

    def query(self, kind: str = "select") -> Query:
        return Query(self, kind)

    def execute(self, sql: str) -> ResultSet:
        if settings.log_sql:
            logger.info("executing SQL: %s", sql)
        else:
            logger.debug("executing SQL: %s", sql)
        try:
            # The connection goes back to the pool as soon as the rows are read
            with self.engine.connect() as conn:
                # Literals are inlined; "%" must reach the driver untouched
                result = conn.exec_driver_sql(sql, execution_options={"no_parameters": True})
                rows = [dict(r) for r in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.exception("query failed: %s", sql)
            raise DataAccessError(f"Query execution failed: {e}", sql=sql) from e
        return ResultSet(rows, sql=sql)
