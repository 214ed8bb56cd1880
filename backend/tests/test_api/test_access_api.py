"""Tests for the member-facing access endpoints."""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from membership_access.timeutils import utcnow


@pytest.fixture
async def active_membership(make_membership):
    now = utcnow()
    return await make_membership(
        subject_id=42,
        plan_id=10,
        started_at=now - timedelta(days=1),
        expires_at=now + timedelta(days=30),
        created_at=datetime(2024, 1, 2),
    )


class TestCheckAccess:
    async def test_anonymous(self, client: AsyncClient, active_membership):
        response = await client.get("/api/v1/access/check", params={"plan_id": 10})
        assert response.status_code == 200
        assert response.json() == {"has_access": False, "plan_id": 10}

    async def test_member_with_plan(self, client: AsyncClient, member_headers: dict, active_membership):
        response = await client.get("/api/v1/access/check", params={"plan_id": 10}, headers=member_headers)
        assert response.json()["has_access"] is True

    async def test_member_without_plan(self, client: AsyncClient, member_headers: dict, active_membership):
        response = await client.get("/api/v1/access/check", params={"plan_id": 99}, headers=member_headers)
        assert response.json()["has_access"] is False

    async def test_any_plan(self, client: AsyncClient, member_headers: dict, active_membership):
        response = await client.get("/api/v1/access/check", headers=member_headers)
        assert response.json() == {"has_access": True, "plan_id": None}

    async def test_lapsed_membership_denied(self, client: AsyncClient, member_headers: dict, make_membership):
        # Still 'active' in storage, but past its expiry
        await make_membership(subject_id=42, expires_at=datetime(2024, 1, 31))

        response = await client.get("/api/v1/access/check", headers=member_headers)
        assert response.json()["has_access"] is False

    async def test_invalid_token_treated_as_anonymous(self, client: AsyncClient, active_membership):
        headers = {"Authorization": "Bearer not.a.valid.jwt"}
        response = await client.get("/api/v1/access/check", headers=headers)
        assert response.status_code == 200
        assert response.json()["has_access"] is False


class TestMyMemberships:
    async def test_current_membership(self, client: AsyncClient, member_headers: dict, active_membership):
        response = await client.get("/api/v1/access/me/membership", headers=member_headers)
        assert response.status_code == 200
        assert response.json()["id"] == str(active_membership.id)

    async def test_no_membership_is_null(self, client: AsyncClient, member_headers: dict):
        response = await client.get("/api/v1/access/me/membership", headers=member_headers)
        assert response.status_code == 200
        assert response.json() is None

    async def test_all_current(
        self, client: AsyncClient, member_headers: dict, active_membership, make_membership
    ):
        now = utcnow()
        newer = await make_membership(
            subject_id=42,
            plan_id=11,
            started_at=now - timedelta(days=1),
            expires_at=now + timedelta(days=5),
            created_at=datetime(2024, 1, 3),
        )
        await make_membership(subject_id=42, plan_id=12, expires_at=datetime(2024, 1, 31))

        response = await client.get("/api/v1/access/me/memberships", headers=member_headers)
        assert response.status_code == 200
        assert [m["id"] for m in response.json()] == [str(newer.id), str(active_membership.id)]
