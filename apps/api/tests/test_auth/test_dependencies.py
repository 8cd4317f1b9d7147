"""Tests for auth dependency functions."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.auth.dependencies import get_current_user, require_permission
from app.models.enums import UserRole
from app.schemas.auth import CurrentUser

ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
CLERK_ID = "user_test_clerk_123"


def _user(role: UserRole) -> CurrentUser:
    return CurrentUser(
        user_id=USER_ID,
        org_id=ORG_ID,
        role=role,
        email="test@example.com",
        external_auth_id=CLERK_ID,
    )


def _credentials() -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials="test-token")


def _db_returning(user) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    db.execute.return_value = result
    return db


class TestRequirePermission:
    """Test the require_permission dependency factory."""

    @pytest.mark.anyio
    async def test_qc_inspector_can_create_report_config(self):
        checker = require_permission("create", "report")
        result = await checker(current_user=_user(UserRole.QC_INSPECTOR))
        assert result.role == UserRole.QC_INSPECTOR

    @pytest.mark.anyio
    async def test_welder_cannot_manage_settings(self):
        checker = require_permission("manage_settings", "settings")
        with pytest.raises(HTTPException) as exc:
            await checker(current_user=_user(UserRole.WELDER))
        assert exc.value.status_code == 403
        assert exc.value.detail == "Permission denied: manage_settings on settings"


class TestGetCurrentUser:
    """Test JWT verification and user lookup."""

    @pytest.mark.anyio
    async def test_resolves_user(self, mock_clerk_jwt):
        db_user = MagicMock()
        db_user.id = USER_ID
        db_user.org_id = ORG_ID
        db_user.role = UserRole.FOREMAN
        db_user.email = "foreman@example.com"

        current = await get_current_user(credentials=_credentials(), db=_db_returning(db_user))

        assert current.user_id == USER_ID
        assert current.role == UserRole.FOREMAN
        assert current.external_auth_id == CLERK_ID
        mock_clerk_jwt.assert_awaited_once_with("test-token")

    @pytest.mark.anyio
    async def test_unknown_user_raises_401(self, mock_clerk_jwt):
        with pytest.raises(HTTPException) as exc:
            await get_current_user(credentials=_credentials(), db=_db_returning(None))
        assert exc.value.status_code == 401

    @pytest.mark.anyio
    async def test_invalid_token_raises_401(self, mock_clerk_jwt):
        mock_clerk_jwt.side_effect = ValueError("bad signature")
        with pytest.raises(HTTPException) as exc:
            await get_current_user(credentials=_credentials(), db=_db_returning(None))
        assert exc.value.status_code == 401
        assert exc.value.headers == {"WWW-Authenticate": "Bearer"}

    @pytest.mark.anyio
    async def test_missing_subject_raises_401(self, mock_clerk_jwt):
        mock_clerk_jwt.return_value = {"email": "test@example.com"}
        with pytest.raises(HTTPException) as exc:
            await get_current_user(credentials=_credentials(), db=_db_returning(None))
        assert exc.value.detail == "Token missing subject claim"
