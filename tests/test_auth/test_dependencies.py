"""Tests for authentication dependencies."""

from typing import Annotated
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from fastapi import Depends
from fastapi import FastAPI
from fastapi.testclient import TestClient

from emuready_api.auth.dependencies import get_current_user
from emuready_api.auth.dependencies import require_permission
from emuready_api.auth.jwt_service import get_jwt_service
from emuready_api.database.models.base import UserRole
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.user import User
from emuready_api.database.repositories.ban import get_ban_repository
from emuready_api.database.repositories.user import get_user_repository
from emuready_api.services.permission_service import get_permission_service


@pytest.fixture
def mock_user_repo():
    """Mock UserRepository."""
    return AsyncMock()


@pytest.fixture
def mock_ban_repo():
    """Mock BanRepository with no active bans."""
    repo = AsyncMock()
    repo.get_active_ban_for_user.return_value = None
    return repo


@pytest.fixture
def app(jwt_service, mock_user_repo, mock_ban_repo, make_permission_service):
    """Minimal app exercising the auth dependencies."""
    app = FastAPI()

    @app.get("/whoami")
    async def whoami(user: Annotated[User, Depends(get_current_user)]):
        return {"pk": str(user.pk)}

    @app.get("/reports-only")
    async def reports_only(
        user: Annotated[User, Depends(require_permission(PermissionKey.MANAGE_REPORTS))],
    ):
        return {"pk": str(user.pk)}

    app.dependency_overrides[get_jwt_service] = lambda: jwt_service
    app.dependency_overrides[get_user_repository] = lambda: mock_user_repo
    app.dependency_overrides[get_ban_repository] = lambda: mock_ban_repo
    app.dependency_overrides[get_permission_service] = lambda: make_permission_service()
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


class TestGetCurrentUser:
    """Test token extraction, user loading and the ban gate."""

    def test_missing_token(self, client):
        response = client.get("/whoami")
        assert response.status_code == 401
        assert response.json()["detail"] == "Access token required"

    def test_invalid_token(self, client):
        response = client.get("/whoami", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    def test_bearer_token(self, client, make_token, make_user, mock_user_repo):
        user = make_user()
        mock_user_repo.get_by_pk.return_value = user

        response = client.get(
            "/whoami", headers={"Authorization": f"Bearer {make_token(user.pk)}"}
        )

        assert response.status_code == 200
        assert response.json() == {"pk": str(user.pk)}
        mock_user_repo.touch_last_active.assert_awaited_once_with(user.pk)

    def test_cookie_token(self, client, make_token, make_user, mock_user_repo):
        user = make_user()
        mock_user_repo.get_by_pk.return_value = user
        client.cookies.set("emuready_at", make_token(user.pk))

        response = client.get("/whoami")

        assert response.status_code == 200

    def test_unknown_user(self, client, make_token, mock_user_repo):
        mock_user_repo.get_by_pk.return_value = None

        response = client.get(
            "/whoami", headers={"Authorization": f"Bearer {make_token(uuid4())}"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"

    def test_banned_user_rejected(
        self, client, make_token, make_user, make_ban, mock_user_repo, mock_ban_repo
    ):
        user = make_user()
        mock_user_repo.get_by_pk.return_value = user
        mock_ban_repo.get_active_ban_for_user.return_value = make_ban(user_pk=user.pk)

        response = client.get(
            "/whoami", headers={"Authorization": f"Bearer {make_token(user.pk)}"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "User account is banned"
        mock_user_repo.touch_last_active.assert_not_awaited()


class TestRequirePermission:
    """Test the permission dependency factory."""

    def test_role_meets_threshold(self, client, make_token, make_user, mock_user_repo):
        moderator = make_user(UserRole.MODERATOR)
        mock_user_repo.get_by_pk.return_value = moderator

        response = client.get(
            "/reports-only",
            headers={"Authorization": f"Bearer {make_token(moderator.pk)}"},
        )

        assert response.status_code == 200

    def test_role_below_threshold(self, client, make_token, make_user, mock_user_repo):
        author = make_user(UserRole.AUTHOR)
        mock_user_repo.get_by_pk.return_value = author

        response = client.get(
            "/reports-only",
            headers={"Authorization": f"Bearer {make_token(author.pk)}"},
        )

        assert response.status_code == 403
        assert "manage_reports" in response.json()["detail"]
