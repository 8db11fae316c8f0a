"""Test configuration for API router tests."""

from unittest.mock import AsyncMock

import pytest

from fastapi.testclient import TestClient

from emuready_api.auth.dependencies import get_current_user
from emuready_api.main import create_app
from emuready_api.services.audit_service import get_audit_service
from emuready_api.services.ban_service import get_ban_service
from emuready_api.services.content_moderation_service import (
    get_content_moderation_service,
)
from emuready_api.services.permission_service import get_permission_service
from emuready_api.services.report_service import get_report_service
from emuready_api.services.trust_service import get_trust_service


@pytest.fixture
def app():
    """FastAPI app; the lifespan (database startup) never runs in these tests."""
    app = create_app()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def login(app, make_permission_service):
    """Authenticate requests as ``user`` with optional explicit grants."""

    def _login(user, granted=()):
        permission_service = make_permission_service(user, granted=granted)
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_permission_service] = lambda: permission_service
        return permission_service

    return _login


def _override(app, factory):
    service = AsyncMock()
    app.dependency_overrides[factory] = lambda: service
    return service


@pytest.fixture
def ban_service(app):
    """Mocked BanService."""
    return _override(app, get_ban_service)


@pytest.fixture
def report_service(app):
    """Mocked ReportService."""
    return _override(app, get_report_service)


@pytest.fixture
def moderation_service(app):
    """Mocked ContentModerationService."""
    return _override(app, get_content_moderation_service)


@pytest.fixture
def trust_service(app):
    """Mocked TrustService."""
    return _override(app, get_trust_service)


@pytest.fixture
def audit_service(app):
    """Mocked AuditService."""
    return _override(app, get_audit_service)
