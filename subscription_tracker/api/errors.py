"""Error boundary: every failure leaves the API as `{"success": false, "message": ...}`.

- AppError subclasses carry their own status code (404/400/401/403).
- Request body / query validation errors become 400 with the messages joined.
- Store integrity violations that escaped the services become 400 (duplicate
  keys are reported as such, other constraint failures as invalid values).
- Anything else is logged with its traceback and reported as a 500.
"""

from __future__ import annotations

import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from subscription_tracker.db import is_integrity_error, is_unique_violation
from subscription_tracker.errors import AppError, UnauthorizedError


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


def _describe_validation_error(err: dict[str, Any]) -> str:
    # ("body", "startDate") -> "startDate"
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    msg = str(err.get("msg") or "invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return error_response(exc.status_code, exc.message, headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, ", ".join(_describe_validation_error(e) for e in exc.errors()))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if is_unique_violation(exc):
        return error_response(400, "Duplicate field value entered")
    if is_integrity_error(exc):
        _debug(f"constraint violation on {request.method} {request.url.path}: {exc!r}")
        return error_response(400, "Invalid field value entered")
    _debug(
        f"unhandled error on {request.method} {request.url.path}: {exc!r}\n"
        + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return error_response(500, "Internal Server Error")


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
