"""Shared test fixtures for the progress reporting API test suite.

The calculation core is pure, so nothing here needs a database: API tests
swap ``get_db`` for a mock session and patch the service loaders.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from app.auth.dependencies import get_current_user
from app.core.database import get_db
from app.main import app
from app.models.enums import UserRole
from app.modules.progress_reports.catalog import WeightCatalog, default_catalog
from app.modules.progress_reports.domain import ComponentProgressRecord, GroupKeys
from app.schemas.auth import CurrentUser

# ── Sample identities ─────────────────────────────────────────────────────

SAMPLE_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
SAMPLE_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
SAMPLE_PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
SAMPLE_CLERK_ID = "user_test_clerk_123"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def catalog() -> WeightCatalog:
    return default_catalog()


@pytest.fixture
def make_component():
    """Factory for in-memory component records."""

    def _make(
        component_type: str = "spool",
        milestones: dict | None = None,
        area: tuple[uuid.UUID, str] | None = None,
        system: tuple[uuid.UUID, str] | None = None,
        test_package: tuple[uuid.UUID, str] | None = None,
        percent_complete: float | None = None,
        is_retired: bool = False,
    ) -> ComponentProgressRecord:
        keys = GroupKeys(
            area_id=area[0] if area else None,
            area_name=area[1] if area else None,
            system_id=system[0] if system else None,
            system_name=system[1] if system else None,
            test_package_id=test_package[0] if test_package else None,
            test_package_name=test_package[1] if test_package else None,
        )
        return ComponentProgressRecord(
            id=uuid.uuid4(),
            component_type=component_type,
            current_milestones=milestones or {},
            group_keys=keys,
            percent_complete=percent_complete,
            is_retired=is_retired,
        )

    return _make


@pytest.fixture
def make_user():
    def _make(role: UserRole = UserRole.ADMIN, user_id: uuid.UUID = SAMPLE_USER_ID) -> CurrentUser:
        return CurrentUser(
            user_id=user_id,
            org_id=SAMPLE_ORG_ID,
            role=role,
            email="test@example.com",
            external_auth_id=SAMPLE_CLERK_ID,
        )

    return _make


@pytest.fixture
def sample_current_user(make_user) -> CurrentUser:
    return make_user()


@pytest.fixture
def mock_db() -> AsyncMock:
    """Stand-in AsyncSession; service functions are patched around it."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_project() -> MagicMock:
    project = MagicMock()
    project.id = SAMPLE_PROJECT_ID
    project.org_id = SAMPLE_ORG_ID
    project.name = "Plant 7 Expansion"
    return project


@pytest.fixture
async def api_client(mock_db: AsyncMock, sample_current_user: CurrentUser) -> AsyncGenerator[AsyncClient]:
    """AsyncClient with auth and DB dependencies overridden."""
    async def _override_user() -> CurrentUser:
        return sample_current_user

    async def _override_db():
        yield mock_db

    app.dependency_overrides[get_current_user] = _override_user
    app.dependency_overrides[get_db] = _override_db
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.pop(get_current_user, None)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def mock_clerk_jwt():
    """Mock verify_clerk_token to bypass Clerk JWKS verification in tests."""
    mock_payload = {
        "sub": SAMPLE_CLERK_ID,
        "email": "test@example.com",
        "iss": "https://test.clerk.accounts.dev",
        "exp": int(datetime.now(timezone.utc).timestamp()) + 3600,
    }
    with patch(
        "app.auth.dependencies.verify_clerk_token",
        new_callable=AsyncMock,
        return_value=mock_payload,
    ) as mock:
        yield mock
