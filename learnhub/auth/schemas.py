"""Pydantic schemas for the authenticated caller."""

from uuid import UUID

from pydantic import BaseModel

from .permissions import UserRole


class AuthenticatedUser(BaseModel):
    """Identity extracted from the access token."""

    id: UUID
    email: str | None = None
    role: UserRole = UserRole.LEARNER
