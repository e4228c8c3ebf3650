from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from subscription_tracker.db import is_unique_violation
from subscription_tracker.errors import ConflictError, NotFoundError, ValidationFailure
from subscription_tracker.util.time import utcnow_iso

from .security import hash_password

NAME_MIN_LEN = 3
NAME_MAX_LEN = 20
PASSWORD_MIN_LEN = 8

_EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """API shape of a user row. The password hash never leaves this module."""
    d = dict(row)
    return {
        "id": d["user_id"],
        "name": d["name"],
        "email": d["email"],
        "createdAt": d["created_at"],
        "updatedAt": d["updated_at"],
    }


def validate_new_user(name: str, email: str, password: str) -> None:
    errors: List[str] = []
    n = (name or "").strip()
    if not n:
        errors.append("name is required")
    elif len(n) < NAME_MIN_LEN:
        errors.append(f"name must be at least {NAME_MIN_LEN} characters long")
    elif len(n) > NAME_MAX_LEN:
        errors.append(f"name must be at most {NAME_MAX_LEN} characters long")

    e = normalize_email(email)
    if not e:
        errors.append("email is required")
    elif not _EMAIL_RE.match(e):
        errors.append("invalid email address")

    if not password:
        errors.append("password is required")
    elif len(password) < PASSWORD_MIN_LEN:
        errors.append(f"password must be at least {PASSWORD_MIN_LEN} characters long")

    if errors:
        raise ValidationFailure(errors)


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def count_users(conn: Any) -> int:
    row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
    return int(row["n"])


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
) -> Dict[str, Any]:
    """Insert a user and return its public shape.

    Runs inside the caller's transaction. Raises ConflictError when the email
    is taken, including when a concurrent insert wins the race and the UNIQUE
    constraint fires.
    """
    validate_new_user(name, email, password)
    e = normalize_email(email)

    if get_user_by_email(conn, e) is not None:
        raise ConflictError("User already exists")

    now = utcnow_iso()
    try:
        conn.execute(
            """
            INSERT INTO users (name, email, password_hash, created_at, updated_at)
            VALUES (?,?,?,?,?)
            """,
            (name.strip(), e, hash_password(password), now, now),
        )
    except Exception as exc:
        if is_unique_violation(exc):
            raise ConflictError("User already exists") from exc
        raise

    row = get_user_by_email(conn, e)
    if row is None:
        raise NotFoundError("User not found")
    return public_user(row)
