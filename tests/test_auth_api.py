from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient

from subscription_tracker.api.server import create_app
from subscription_tracker.auth.crud import count_users
from subscription_tracker.config import Config
from subscription_tracker.db import connect


def test_sign_up_returns_token_and_user_without_password(client: TestClient) -> None:
    response = client.post(
        "/api/v1/auth/sign-up",
        json={"name": "Test User", "email": "Test@Example.com", "password": "password123"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User created successfully"
    assert body["token"]
    user = body["user"]
    assert user["name"] == "Test User"
    assert user["email"] == "test@example.com"
    assert "password" not in user
    assert "password_hash" not in user


def test_sign_up_duplicate_email_is_rejected_without_new_record(
    client: TestClient, cfg: Config, sign_up
) -> None:
    sign_up()
    with connect(cfg.DB_DSN) as conn:
        before = count_users(conn)

    response = client.post(
        "/api/v1/auth/sign-up",
        json={"name": "Someone Else", "email": " TEST@example.com ", "password": "password456"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User already exists"}
    with connect(cfg.DB_DSN) as conn:
        assert count_users(conn) == before == 1


def test_sign_up_validation_failure_lists_all_problems(client: TestClient) -> None:
    response = client.post(
        "/api/v1/auth/sign-up",
        json={"name": "ab", "email": "not-an-email", "password": "short"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "name must be at least 3 characters long, invalid email address, "
        "password must be at least 8 characters long",
    }


def test_sign_up_missing_field_is_a_bad_request(client: TestClient) -> None:
    response = client.post("/api/v1/auth/sign-up", json={"name": "Test User"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "email" in body["message"]
    assert "password" in body["message"]


def test_sign_in_with_correct_credentials(client: TestClient, sign_up) -> None:
    sign_up()

    response = client.post(
        "/api/v1/auth/sign-in",
        json={"email": "test@example.com", "password": "password123"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "User signed in successfully"
    assert body["data"]["success"] is True
    assert body["data"]["token"]
    assert body["data"]["user"]["email"] == "test@example.com"
    assert "password_hash" not in body["data"]["user"]


def test_sign_in_with_wrong_password(client: TestClient, sign_up) -> None:
    sign_up()

    response = client.post(
        "/api/v1/auth/sign-in",
        json={"email": "test@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid password"}


def test_sign_in_unknown_email(client: TestClient) -> None:
    response = client.post(
        "/api/v1/auth/sign-in",
        json={"email": "nobody@example.com", "password": "password123"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User not found"}


def test_sign_out_is_client_side(client: TestClient) -> None:
    response = client.post("/api/v1/auth/sign-out")

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_profile_requires_token(client: TestClient) -> None:
    response = client.get("/api/v1/users/")

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.headers["www-authenticate"] == "Bearer"


def test_profile_rejects_non_bearer_scheme(client: TestClient, sign_up) -> None:
    token = sign_up()["token"]

    response = client.get("/api/v1/users/", headers={"Authorization": f"Basic {token}"})

    assert response.status_code == 401


def test_profile_rejects_garbage_token(client: TestClient) -> None:
    response = client.get("/api/v1/users/", headers={"Authorization": "Bearer not.a.jwt"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Unauthorized: invalid token"}


def test_profile_rejects_expired_token(client: TestClient, cfg: Config, sign_up) -> None:
    user_id = sign_up()["user"]["id"]
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = jwt.encode({"sub": str(user_id), "exp": int(past.timestamp())}, cfg.AUTH_JWT_SECRET, algorithm="HS256")

    response = client.get("/api/v1/users/", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized: token expired"


def test_profile_rejects_token_of_deleted_user(client: TestClient, cfg: Config, sign_up) -> None:
    body = sign_up()
    with connect(cfg.DB_DSN) as conn:
        conn.execute("DELETE FROM users WHERE user_id=?", (body["user"]["id"],))

    response = client.get("/api/v1/users/", headers={"Authorization": f"Bearer {body['token']}"})

    assert response.status_code == 401


def test_profile_returns_own_user(client: TestClient, sign_up) -> None:
    body = sign_up()

    response = client.get("/api/v1/users/", headers={"Authorization": f"Bearer {body['token']}"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["success"] is True
    assert data["user"] == body["user"]


def test_get_user_by_id(client: TestClient, sign_up, auth_headers) -> None:
    other = sign_up(name="Other User", email="other@example.com")["user"]

    response = client.get(f"/api/v1/users/{other['id']}", headers=auth_headers)

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["email"] == "other@example.com"
    assert "password_hash" not in user


def test_get_user_by_id_not_found(client: TestClient, auth_headers) -> None:
    assert client.get("/api/v1/users/9999", headers=auth_headers).status_code == 404

    response = client.get("/api/v1/users/not-an-id", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Resource not found. Invalid id: not-an-id"


def test_get_user_by_id_requires_token(client: TestClient, sign_up) -> None:
    user_id = sign_up()["user"]["id"]

    assert client.get(f"/api/v1/users/{user_id}").status_code == 401


def test_sign_up_is_rolled_back_when_token_cannot_be_issued(cfg: Config, monkeypatch) -> None:
    from subscription_tracker.auth import service

    def _fail(*args, **kwargs):
        raise RuntimeError("signing unavailable")

    monkeypatch.setattr(service, "issue_token", _fail)

    with TestClient(create_app(cfg), raise_server_exceptions=False) as client:
        response = client.post(
            "/api/v1/auth/sign-up",
            json={"name": "Test User", "email": "test@example.com", "password": "password123"},
        )

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal Server Error"}
    with connect(cfg.DB_DSN) as conn:
        assert count_users(conn) == 0


def test_concurrent_duplicate_sign_up_is_caught_by_unique_email(
    client: TestClient, cfg: Config, sign_up, monkeypatch
) -> None:
    from subscription_tracker.auth import crud

    sign_up()
    # Another request inserted the same email after this one's existence check.
    monkeypatch.setattr(crud, "get_user_by_email", lambda conn, email: None)

    response = client.post(
        "/api/v1/auth/sign-up",
        json={"name": "Someone Else", "email": "test@example.com", "password": "password456"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User already exists"}
    with connect(cfg.DB_DSN) as conn:
        assert count_users(conn) == 1
