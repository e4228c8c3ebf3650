from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

from subscription_tracker.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    scheme = urlparse(s).scheme.lower()
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    # sqlite:///path style and bare file paths both mean SQLite.
    return "sqlite"


# Single- or double-quoted SQL literals ('' and "" are escapes).
_QUOTED = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\")")


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    '?' inside quoted literals is left alone. Not a full SQL parser, but
    sufficient for the statements in this codebase.
    """
    parts = _QUOTED.split(sql)
    for i in range(0, len(parts), 2):
        parts[i] = parts[i].replace("?", "%s")
    return "".join(parts)


class PGConnection:
    """A tiny adapter that makes psycopg2 connections look like sqlite3 connections."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        cur = self._conn.cursor()
        cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return cur

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


def is_integrity_error(exc: BaseException) -> bool:
    """True for unique/foreign-key/check violations on either engine."""
    if isinstance(exc, sqlite3.IntegrityError):
        return True
    # psycopg2.IntegrityError (and subclasses like UniqueViolation); matched by
    # name so SQLite-only installs never import psycopg2.
    return any(cls.__name__ == "IntegrityError" for cls in type(exc).__mro__)


def is_unique_violation(exc: BaseException) -> bool:
    """True only for duplicate-key violations (UNIQUE / PRIMARY KEY)."""
    if not is_integrity_error(exc):
        return False
    # psycopg2 exposes the SQLSTATE; 23505 is unique_violation.
    if getattr(exc, "pgcode", None) == "23505":
        return True
    return "UNIQUE constraint failed" in str(exc)


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Open a connection that is also a transaction.

    Commits when the block exits normally, rolls back when it raises (the
    exception is re-raised), and always closes the connection.

    - SQLite: uses WAL + NORMAL sync, foreign keys ON.
    - Postgres: uses psycopg2 (RealDictCursor) so rows behave like dicts.
    """
    dsn = (db_dsn or "").strip()
    dialect = _detect_dialect(dsn)

    if dialect == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except ImportError as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install the 'postgres' extra and try again."
            ) from e

        raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
        conn: Any = PGConnection(raw)
    else:
        if dsn.lower().startswith("sqlite:///"):
            dsn = dsn[len("sqlite:///") :]

        Path(dsn).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA busy_timeout=5000;")  # 5s
        conn.execute("PRAGMA foreign_keys = ON;")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = _detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    with connect(db_dsn) as conn:
        ddl = get_schema_sql(dialect)
        if dialect == "postgres":
            # Execute multi-statement DDL (naive split is OK for our schema)
            for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                conn.execute(stmt)
            return
        # SQLite can run it in one go
        conn.executescript(ddl)
