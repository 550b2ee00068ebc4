"""
Tests for the auth API endpoints (/api/v2/auth).
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import create_access_token
from app.config import settings
from app.models.audit_log import AuditLog, AuditEntityType, AuditAction
from app.models.user import User

TEST_PASSWORD = "testpassword123"

AUTH_PREFIX = "/api/v2/auth"


def _bearer(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


class TestLogin:
    """Tests for POST /api/v2/auth/login."""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, client_user: User):
        response = await client.post(
            f"{AUTH_PREFIX}/login",
            json={"email": client_user.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"

        payload = jwt.decode(
            data["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        assert payload["sub"] == str(client_user.id)
        assert payload["email"] == client_user.email
        assert "session" in response.cookies

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, client_user: User):
        response = await client.post(
            f"{AUTH_PREFIX}/login",
            json={"email": client_user.email, "password": "wrongpassword"},
        )

        assert response.status_code == 401
        assert "Incorrect email or password" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_login_inactive_user(
        self, client: AsyncClient, test_db: AsyncSession, client_user: User
    ):
        client_user.is_active = False
        await test_db.commit()

        response = await client.post(
            f"{AUTH_PREFIX}/login",
            json={"email": client_user.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 401
        assert "disabled" in response.json()["detail"].lower()

    @pytest.mark.asyncio
    async def test_login_password_never_returned(self, client: AsyncClient, client_user: User):
        response = await client.post(
            f"{AUTH_PREFIX}/login",
            json={"email": client_user.email, "password": TEST_PASSWORD},
        )

        body = response.text
        assert TEST_PASSWORD not in body
        assert "hashed_password" not in body
        assert "$2b$" not in body  # bcrypt hash prefix


class TestLogout:
    """Tests for POST /api/v2/auth/logout."""

    @pytest.mark.asyncio
    async def test_logout_without_session(self, client: AsyncClient):
        response = await client.post(f"{AUTH_PREFIX}/logout")

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully logged out"


class TestAuthMe:
    """Tests for GET /api/v2/auth/me."""

    @pytest.mark.asyncio
    async def test_me_authenticated(self, client: AsyncClient, admin_user: User):
        response = await client.get(f"{AUTH_PREFIX}/me", headers=_bearer(admin_user))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == admin_user.id
        assert data["email"] == "admin@myjantes.fr"
        assert data["role"] == "admin"
        assert "hashed_password" not in data

    @pytest.mark.asyncio
    async def test_me_unauthenticated(self, client: AsyncClient):
        response = await client.get(f"{AUTH_PREFIX}/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_with_expired_token(self, client: AsyncClient, client_user: User):
        token = create_access_token(
            data={"sub": str(client_user.id), "email": client_user.email},
            expires_delta=timedelta(seconds=-1),
        )

        response = await client.get(
            f"{AUTH_PREFIX}/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401


class TestRegister:
    """Tests for POST /api/v2/auth/register."""

    @pytest.mark.asyncio
    async def test_register_records_system_creation(
        self, client: AsyncClient, test_db: AsyncSession
    ):
        response = await client.post(
            f"{AUTH_PREFIX}/register",
            json={
                "email": "nouveau@example.com",
                "password": "motdepasse123",
                "first_name": "Paul",
                "last_name": "Durand",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "client"

        result = await test_db.execute(
            select(AuditLog).where(
                AuditLog.entity_type == AuditEntityType.USER,
                AuditLog.entity_id == data["id"],
            )
        )
        [log] = result.scalars().all()
        assert log.action is AuditAction.CREATED
        assert log.summary == "Utilisateur créé par inscription"
        assert log.actor_id is None
        assert log.actor_name is None
        assert log.actor_role is None
        assert log.changes == []

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, client_user: User):
        response = await client.post(
            f"{AUTH_PREFIX}/register",
            json={"email": client_user.email, "password": "motdepasse123"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "RES_003"

    @pytest.mark.asyncio
    async def test_register_short_password(self, client: AsyncClient):
        response = await client.post(
            f"{AUTH_PREFIX}/register",
            json={"email": "court@example.com", "password": "court"},
        )

        assert response.status_code == 422
