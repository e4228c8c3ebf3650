"""Database schema for the Subscription Tracker.

SQLite is the default engine; Postgres is supported as well.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') and calendar dates are
ISO `YYYY-MM-DD` TEXT. Both sort lexicographically in time order, so
comparisons like `renewal_date <= ?` behave correctly on either engine.

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations (types + autoincrement).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

-- Users / Auth
-- We use JWTs for stateless auth and store only password hashes.
CREATE TABLE IF NOT EXISTS users (
    user_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Subscriptions (one row per tracked service, owned by a user)
CREATE TABLE IF NOT EXISTS subscriptions (
    subscription_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    price REAL NOT NULL CHECK (price >= 0),
    currency TEXT NOT NULL,
    frequency TEXT NOT NULL CHECK (frequency IN ('daily','weekly','monthly','yearly')),
    category TEXT NOT NULL
        CHECK (category IN ('food','entertainment','shopping','health','education','other')),
    payment_method TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active','inactive','cancelled')),
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    renewal_date TEXT,
    cancelled_at TEXT,
    cancellation_reason TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_subscriptions_user ON subscriptions (user_id);
CREATE INDEX IF NOT EXISTS idx_subscriptions_user_renewal ON subscriptions (user_id, status, renewal_date);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # Remove SQLite pragmas
    lines: list[str] = []
    for line in ddl.splitlines():
        if line.strip().upper().startswith("PRAGMA "):
            continue
        lines.append(line)
    out = "\n".join(lines)

    # Types
    out = re.sub(r"\bREAL\b", "DOUBLE PRECISION", out)

    # AUTOINCREMENT primary keys
    out = re.sub(
        r"INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        "BIGSERIAL PRIMARY KEY",
        out,
        flags=re.IGNORECASE,
    )
    # Foreign keys must match the BIGSERIAL type
    out = re.sub(r"\buser_id INTEGER NOT NULL\b", "user_id BIGINT NOT NULL", out)
    return out


def get_schema_sql(dialect: str) -> str:
    if dialect == "postgres":
        return _sqlite_to_postgres(SCHEMA_SQLITE)
    return SCHEMA_SQLITE
