"""Tests for auth security functions."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt
from pydantic import ValidationError

from src.auth.dependencies import session_user_from_payload
from src.auth.permissions import RoleKind, UserRole
from src.auth.security import (
    SESSION_TOKEN_TYPE,
    create_access_token,
    decode_access_token,
    hash_password,
    token_ttl_seconds,
    verify_password,
)
from src.config import get_settings


def _claims(role: UserRole = UserRole.STUDENT) -> dict[str, str]:
    return {
        "sub": str(uuid4()),
        "username": "jdoe",
        "role": role.value,
        "tenant_id": str(uuid4()),
    }


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_creates_hash(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        assert hashed != "SecureP@ssword123"
        assert hashed.startswith("$argon2id$")

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        assert hash_password("SecureP@ssword123") != hash_password("SecureP@ssword123")

    def test_verify_password_correct(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        is_valid, new_hash = verify_password("SecureP@ssword123", hashed)
        assert is_valid is True
        assert new_hash is None  # No rehash needed for fresh hash

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        assert verify_password("WrongP@ssword456", hashed) == (False, None)

    def test_verify_password_garbage_hash(self) -> None:
        assert verify_password("anything", "not-a-hash") == (False, None)


class TestSessionToken:
    """Tests for session token creation and decoding."""

    def test_round_trip_adds_jti_and_type(self) -> None:
        claims = _claims(UserRole.ADMIN)
        payload = decode_access_token(create_access_token(claims))

        assert payload["sub"] == claims["sub"]
        assert payload["tenant_id"] == claims["tenant_id"]
        assert payload["type"] == SESSION_TOKEN_TYPE
        assert payload["jti"]
        assert token_ttl_seconds(payload) > 0

    def test_each_token_gets_its_own_jti(self) -> None:
        claims = _claims()
        first = decode_access_token(create_access_token(claims))
        second = decode_access_token(create_access_token(claims))
        assert first["jti"] != second["jti"]

    def test_expired_token(self) -> None:
        token = create_access_token(_claims(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_invalid_token(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_wrong_type(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {**_claims(), "jti": "x", "type": "refresh"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError, match="Invalid token type"):
            decode_access_token(token)

    def test_missing_tenant_claim(self) -> None:
        claims = _claims()
        del claims["tenant_id"]
        with pytest.raises(JWTError, match="tenant_id"):
            decode_access_token(create_access_token(claims))

    def test_ttl_without_exp(self) -> None:
        assert token_ttl_seconds({}) == 0


class TestSessionUser:
    def test_from_payload(self) -> None:
        payload = decode_access_token(create_access_token(_claims(UserRole.SUPERADMIN)))
        user = session_user_from_payload(payload)

        assert user.role is UserRole.SUPERADMIN
        assert user.kind is RoleKind.ADMIN
        assert user.is_admin is True

    def test_unknown_role_tag_rejected(self) -> None:
        payload = {**_claims(), "role": "instructor", "jti": "abc"}
        with pytest.raises(ValidationError):
            session_user_from_payload(payload)
