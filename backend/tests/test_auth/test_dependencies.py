"""Tests for auth dependencies — identity resolution and admin gating."""

from datetime import timedelta

from httpx import AsyncClient

from membership_access.auth.dependencies import _identity_from_token
from membership_access.auth.jwt import create_access_token, create_subject_token


class TestIdentityFromToken:
    def test_customer_identity(self):
        identity = _identity_from_token(create_subject_token(42))
        assert identity.subject_id == 42
        assert identity.is_admin is False

    def test_admin_identity(self):
        identity = _identity_from_token(create_subject_token(1, role="admin"))
        assert identity.is_admin is True

    def test_missing_role_defaults_to_customer(self):
        identity = _identity_from_token(create_access_token({"sub": "42"}))
        assert identity.role == "customer"

    def test_non_numeric_subject_rejected(self):
        assert _identity_from_token(create_access_token({"sub": "user-abc"})) is None

    def test_zero_subject_rejected(self):
        assert _identity_from_token(create_access_token({"sub": "0"})) is None

    def test_missing_subject_rejected(self):
        assert _identity_from_token(create_access_token({"role": "admin"})) is None

    def test_garbage_rejected(self):
        assert _identity_from_token("not.a.valid.jwt") is None


class TestGetCurrentIdentity:
    """Test get_current_identity via the /me endpoint."""

    async def test_missing_token_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/access/me/membership")
        assert response.status_code == 401

    async def test_expired_token_rejected(self, client: AsyncClient):
        token = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-1))
        headers = {"Authorization": f"Bearer {token}"}
        response = await client.get("/api/v1/access/me/membership", headers=headers)
        assert response.status_code == 401

    async def test_invalid_token_format(self, client: AsyncClient):
        headers = {"Authorization": "Bearer not.a.valid.jwt"}
        response = await client.get("/api/v1/access/me/membership", headers=headers)
        assert response.status_code == 401

    async def test_non_access_token_type_rejected(self, client: AsyncClient):
        from jose import jwt

        from membership_access.config import settings

        token = jwt.encode(
            {"sub": "42", "type": "refresh"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )
        headers = {"Authorization": f"Bearer {token}"}
        response = await client.get("/api/v1/access/me/membership", headers=headers)
        assert response.status_code == 401


class TestRequireAdmin:
    async def test_customer_forbidden(self, client: AsyncClient, member_headers: dict):
        response = await client.get("/api/v1/memberships", headers=member_headers)
        assert response.status_code == 403

    async def test_anonymous_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/v1/memberships")
        assert response.status_code == 401

    async def test_admin_allowed(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/memberships", headers=admin_headers)
        assert response.status_code == 200
