"""Role-based access control for LearnHub.

Hierarchical permission system:
- ADMIN (level 2): Full system access, reactivates closed enrollments
- INSTRUCTOR (level 1): Course analytics, suspends enrollments
- LEARNER (level 0): Own progress and enrollments
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels.

    Higher level = more permissions.
    """

    LEARNER = "learner"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.LEARNER: 0,
    UserRole.INSTRUCTOR: 1,
    UserRole.ADMIN: 2,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role.

    Args:
        role: UserRole enum or string representation

    Returns:
        Permission level (0-2), defaults to 0 for unknown roles
    """
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission(UserRole.LEARNER, UserRole.INSTRUCTOR)
        False
        >>> has_permission("admin", "learner")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN
