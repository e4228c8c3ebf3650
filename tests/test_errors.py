from __future__ import annotations

import sqlite3

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from subscription_tracker.api.errors import setup_exception_handlers
from subscription_tracker.db import is_integrity_error, is_unique_violation


@pytest.fixture()
def failing_client() -> TestClient:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/unique")
    def unique() -> None:
        raise sqlite3.IntegrityError("UNIQUE constraint failed: users.email")

    @app.get("/not-null")
    def not_null() -> None:
        raise sqlite3.IntegrityError("NOT NULL constraint failed: subscriptions.price")

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("boom")

    return TestClient(app, raise_server_exceptions=False)


def test_unique_violation_is_reported_as_duplicate(failing_client: TestClient) -> None:
    response = failing_client.get("/unique")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Duplicate field value entered"}


def test_other_constraint_violation_is_not_reported_as_duplicate(failing_client: TestClient) -> None:
    response = failing_client.get("/not-null")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid field value entered"}


def test_unexpected_error_is_internal(failing_client: TestClient) -> None:
    response = failing_client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal Server Error"}


def test_unique_violation_detection() -> None:
    class IntegrityError(Exception):
        pgcode = "23505"

    assert is_unique_violation(sqlite3.IntegrityError("UNIQUE constraint failed: users.email"))
    assert is_unique_violation(IntegrityError("duplicate key value"))
    assert is_integrity_error(sqlite3.IntegrityError("CHECK constraint failed: price >= 0"))
    assert not is_unique_violation(sqlite3.IntegrityError("CHECK constraint failed: price >= 0"))
    assert not is_unique_violation(ValueError("UNIQUE constraint failed"))
