from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from subscription_tracker.api.server import create_app
from subscription_tracker.config import Config
from subscription_tracker.db import init_db


@pytest.fixture()
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "test.sqlite"),
        AUTH_JWT_SECRET="test-secret-of-sufficient-length-0123456",
        AUTH_TOKEN_EXPIRE_MINUTES=60,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture()
def db(cfg: Config) -> Config:
    init_db(cfg.DB_DSN)
    return cfg


@pytest.fixture()
def client(cfg: Config) -> Generator[TestClient, None, None]:
    app = create_app(cfg)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def sign_up(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _sign_up(
        name: str = "Test User",
        email: str = "test@example.com",
        password: str = "password123",
    ) -> dict[str, Any]:
        response = client.post(
            "/api/v1/auth/sign-up",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _sign_up


@pytest.fixture()
def auth_headers(sign_up: Callable[..., dict[str, Any]]) -> dict[str, str]:
    body = sign_up()
    return {"Authorization": f"Bearer {body['token']}"}
