from __future__ import annotations

from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from subscription_tracker.config import Config
from subscription_tracker.db import connect
from subscription_tracker.errors import UnauthorizedError

from .crud import get_user_by_id, public_user
from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)


def get_config(request: Request) -> Config:
    """The Config the app was built with (see `create_app`)."""
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise RuntimeError("server_config_missing")
    return cfg


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header.

    Every failure (no header, wrong scheme, bad/expired token, account gone)
    is a 401. On success the public user is attached to `request.state.user`.
    """

    # HTTPBearer(auto_error=False) yields None for a missing header or a
    # scheme other than "Bearer".
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Unauthorized")

    try:
        payload = decode_access_token(token=credentials.credentials, secret=cfg.AUTH_JWT_SECRET)
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Unauthorized: token expired")
    except (jwt.InvalidTokenError, ValueError):
        raise UnauthorizedError("Unauthorized: invalid token")

    sub = str(payload.get("sub") or "")
    if not sub.isdigit():
        raise UnauthorizedError("Unauthorized: invalid token")

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, int(sub))
        if row is None:
            raise UnauthorizedError("Unauthorized")
        user = public_user(row)

    request.state.user = user
    return user
