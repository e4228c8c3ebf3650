"""Registration and sign-in.

Each operation opens its own `connect()` block, so everything it does is one
transaction: on any exception the block rolls back and the exception reaches
the caller unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from subscription_tracker.config import Config
from subscription_tracker.db import connect
from subscription_tracker.errors import AuthenticationError

from .crud import create_user, get_user_by_email, public_user
from .security import create_access_token, verify_password


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def issue_token(cfg: Config, user_id: int) -> str:
    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user_id),
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )


def register_user(cfg: Config, *, name: str, email: str, password: str) -> Tuple[Dict[str, Any], str]:
    """Create an account and sign it in. Returns (public user, token)."""
    with connect(cfg.DB_DSN) as conn:
        user = create_user(conn, name=name, email=email, password=password)
        # Issued before commit: if signing fails the new row is rolled back.
        token = issue_token(cfg, user["id"])
    _debug(f"registered user_id={user['id']}")
    return user, token


def authenticate_user(cfg: Config, *, email: str, password: str) -> Tuple[Dict[str, Any], str]:
    """Check credentials. Returns (public user, token)."""
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_email(conn, email)
        if row is None:
            raise AuthenticationError("User not found")
        if not verify_password(password, str(row["password_hash"])):
            raise AuthenticationError("Invalid password")
        user = public_user(row)

    return user, issue_token(cfg, user["id"])
