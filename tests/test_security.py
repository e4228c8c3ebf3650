from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from subscription_tracker.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret-of-sufficient-length-01"


def test_hash_then_verify_round_trip() -> None:
    hashed = hash_password("password123")

    assert hashed != "password123"
    assert verify_password("password123", hashed) is True
    assert verify_password("password124", hashed) is False
    assert verify_password("", hashed) is False


def test_each_hash_uses_a_fresh_salt() -> None:
    assert hash_password("password123") != hash_password("password123")


def test_verify_rejects_garbage_hash() -> None:
    assert verify_password("password123", "not-a-hash") is False


def test_blank_password_cannot_be_hashed() -> None:
    with pytest.raises(ValueError):
        hash_password("")


def test_token_round_trip_carries_user_id() -> None:
    token = create_access_token(secret=SECRET, user_id=42, expires_minutes=5)

    claims = decode_access_token(token=token, secret=SECRET)

    assert claims["sub"] == "42"
    assert claims["exp"] > claims["iat"]


def test_token_signed_with_other_secret_is_rejected() -> None:
    token = create_access_token(secret=SECRET, user_id=42, expires_minutes=5)

    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token=token, secret="another-secret-of-sufficient-length-0123")


def test_expired_token_is_rejected() -> None:
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = jwt.encode({"sub": "42", "exp": int(past.timestamp())}, SECRET, algorithm="HS256")

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token=token, secret=SECRET)
