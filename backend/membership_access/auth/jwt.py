"""JWT verification for storefront-issued access tokens."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from membership_access.config import settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token.

    The storefront normally issues these; this is used for service accounts
    and tests.

    Args:
        data: Payload data. Must include ``sub`` (storefront user id as string)
            and may include ``role``.
        expires_delta: Custom expiration duration. Defaults to
            ``settings.jwt_access_token_expire_minutes`` minutes.

    Returns:
        Encoded JWT string.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    to_encode.update({"exp": expire, "iat": now, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Args:
        token: Encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_subject_token(subject_id: int, role: str = "customer") -> str:
    """Access token for a storefront user id with the given role."""
    return create_access_token({"sub": str(subject_id), "role": role})
