"""Caller identity and role checks."""

from .dependencies import AdminUser, CurrentUser, InstructorUser
from .permissions import UserRole, has_permission


__all__ = [
    "AdminUser",
    "CurrentUser",
    "InstructorUser",
    "UserRole",
    "has_permission",
]
