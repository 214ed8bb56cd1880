"""FastAPI authentication dependencies for route protection."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from membership_access.auth.jwt import decode_token

ADMIN_ROLE = "admin"

# Optional bearer: returns None if no token provided
_bearer_scheme_optional = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """The storefront user behind a request."""

    subject_id: int
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def _identity_from_token(token: str) -> Identity | None:
    """Decode a bearer token into an identity; ``None`` if it is not usable."""
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    # Only accept access tokens, not refresh tokens
    if payload.get("type") != "access":
        return None

    sub: str | None = payload.get("sub")
    if sub is None:
        return None

    try:
        subject_id = int(sub)
    except (TypeError, ValueError):
        return None
    if subject_id <= 0:
        return None

    return Identity(subject_id=subject_id, role=str(payload.get("role") or "customer"))


async def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme_optional),
) -> Identity | None:
    """Optionally authenticate the caller from a Bearer token.

    Returns ``None`` instead of raising for anonymous or unusable tokens, so
    access checks fail closed rather than erroring.
    """
    if credentials is None:
        return None
    return _identity_from_token(credentials.credentials)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme_optional),
) -> Identity:
    """Require a valid Bearer token.

    Raises:
        HTTPException 401: If the token is missing, invalid, expired, or has no usable subject.
    """
    identity = _identity_from_token(credentials.credentials) if credentials else None
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def get_current_subject_id(identity: Identity | None = Depends(get_optional_identity)) -> int | None:
    """The caller's storefront user id, or ``None`` when anonymous."""
    return identity.subject_id if identity else None


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Allow only store administrators.

    Raises:
        HTTPException 403: If the caller is authenticated but not an admin.
    """
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return identity
