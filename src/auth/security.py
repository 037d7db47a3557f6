"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- Session token creation and validation (JWT)
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from jose import JWTError, jwt

from src.config.settings import get_settings


# Argon2id configuration (OWASP recommended parameters)
# https://cheatsheetseries.owasp.org/cheatsheets/Password_Storage_Cheat_Sheet.html
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # 19 MiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)

SESSION_TOKEN_TYPE = "session"
REQUIRED_CLAIMS = ("sub", "username", "role", "tenant_id", "jti")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Verify a password against its hash.

    Returns:
        Tuple of (is_valid, new_hash). new_hash is set when the stored hash
        was made with outdated parameters and should be replaced.
    """
    try:
        _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)
    return True, None


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token.

    Args:
        data: Claims, typically {"sub", "username", "role", "tenant_id"}
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string. A `jti` is added when missing so the session can
        be revoked at logout.
    """
    settings = get_settings()

    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.setdefault("jti", str(uuid4()))
    to_encode.update(
        {
            "exp": now
            + (
                expires_delta
                or timedelta(minutes=settings.auth_access_token_expire_minutes)
            ),
            "iat": now,
            "type": SESSION_TOKEN_TYPE,
        }
    )

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a session token.

    Validates signature, expiration, token type and required claims.

    Raises:
        JWTError: If token is invalid, expired, of the wrong type or incomplete
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != SESSION_TOKEN_TYPE:
        msg = "Invalid token type"
        raise JWTError(msg)

    missing = [claim for claim in REQUIRED_CLAIMS if not payload.get(claim)]
    if missing:
        msg = f"Token missing claims: {', '.join(missing)}"
        raise JWTError(msg)

    return payload


def token_ttl_seconds(payload: dict[str, Any]) -> int:
    """Seconds left before a decoded token expires (never negative)."""
    exp = payload.get("exp")
    if not exp:
        return 0
    remaining = int(exp - datetime.now(UTC).timestamp())
    return max(remaining, 0)
