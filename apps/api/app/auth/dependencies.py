"""FastAPI auth dependencies: get_current_user, require_permission."""

import sentry_sdk
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.clerk_jwt import verify_clerk_token
from app.auth.rbac import check_permission
from app.core.database import get_db
from app.models.core import User
from app.schemas.auth import CurrentUser

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=True)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _load_active_user(db: AsyncSession, clerk_user_id: str) -> User | None:
    stmt = select(User).where(
        User.external_auth_id == clerk_user_id,
        User.is_active.is_(True),
        User.is_deleted.is_(False),
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the calling crew member from a Clerk session token.

    The token's ``sub`` claim is the Clerk user id; the internal user_id,
    org_id and field role come from the users table. Deactivated and
    soft-deleted users are rejected.
    """
    try:
        payload = await verify_clerk_token(credentials.credentials)
    except Exception as e:
        logger.warning("jwt_verification_failed", error=str(e))
        raise _unauthorized("Invalid or expired token") from e

    clerk_user_id = payload.get("sub")
    if not clerk_user_id:
        raise _unauthorized("Token missing subject claim")

    user = await _load_active_user(db, clerk_user_id)
    if user is None:
        logger.warning("user_not_found_for_clerk_id", clerk_id=clerk_user_id)
        raise _unauthorized("User not found or inactive")

    # PII-free scope: no email
    sentry_sdk.set_user({"id": str(user.id)})
    sentry_sdk.set_tag("org_id", str(user.org_id))
    sentry_sdk.set_tag("user_role", user.role.value)

    return CurrentUser(
        user_id=user.id,
        org_id=user.org_id,
        role=user.role,
        email=user.email,
        external_auth_id=clerk_user_id,
    )


def require_permission(action: str, resource_type: str):
    """
    Dependency factory: checks a specific (action, resource_type) permission.

    Usage:
        current_user: CurrentUser = Depends(require_permission(Action.EXPORT, Resource.REPORT))
    """

    async def _check_perm(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if not check_permission(current_user.role, action, resource_type):
            logger.info(
                "permission_denied",
                user_id=str(current_user.user_id),
                role=current_user.role.value,
                action=action,
                resource_type=resource_type,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {action} on {resource_type}",
            )
        return current_user

    return _check_perm
