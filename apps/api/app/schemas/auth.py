"""Auth schemas: CurrentUser."""

import uuid

from pydantic import BaseModel

from app.models.enums import UserRole


class CurrentUser(BaseModel):
    """Lightweight user context extracted from Clerk JWT + DB lookup."""

    user_id: uuid.UUID
    org_id: uuid.UUID
    role: UserRole
    email: str
    external_auth_id: str  # Clerk user ID (e.g. "user_2x...")
