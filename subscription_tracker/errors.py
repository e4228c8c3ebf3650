"""Application error taxonomy.

Services raise these; the API layer (`api/errors.py`) turns them into
`{"success": false, "message": ...}` responses using `status_code`.
"""

from __future__ import annotations

from typing import Iterable


class AppError(Exception):
    """Base class for errors with a known HTTP mapping."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    """Duplicate value for a unique field (e.g. email)."""

    status_code = 400
    default_message = "Duplicate field value entered"


class ValidationFailure(AppError):
    """One or more field constraints failed.

    `errors` keeps the individual messages; `message` is all of them joined.
    """

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors) or None)


class AuthenticationError(AppError):
    """Sign-in rejected (unknown email or wrong password)."""

    status_code = 400
    default_message = "Invalid credentials"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


def parse_id(raw: str, *, field: str = "id") -> int:
    """Parse a path identifier; malformed ids are reported as NotFound."""
    s = (raw or "").strip()
    if not (s.isascii() and s.isdigit()) or int(s) <= 0:
        raise NotFoundError(f"Resource not found. Invalid {field}: {raw}")
    return int(s)
