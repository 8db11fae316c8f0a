"""Role hierarchy for the EmuReady API.

All role comparisons in the application go through ``outranks`` and
``at_least``; nothing compares role strings directly.
"""

from emuready_api.database.models.base import UserRole

ROLE_HIERARCHY: tuple[UserRole, ...] = (
    UserRole.USER,
    UserRole.AUTHOR,
    UserRole.DEVELOPER,
    UserRole.MODERATOR,
    UserRole.ADMIN,
    UserRole.SUPER_ADMIN,
)


def role_level(role: UserRole | str) -> int:
    """Ordinal position of a role. Raises ValueError for unknown roles."""
    return ROLE_HIERARCHY.index(UserRole(role))


def outranks(actor_role: UserRole | str, target_role: UserRole | str) -> bool:
    """Strict superiority: ``actor_role`` sits above ``target_role``."""
    return role_level(actor_role) > role_level(target_role)


def at_least(actor_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Inclusive check: ``actor_role`` is ``required_role`` or higher."""
    return role_level(actor_role) >= role_level(required_role)
