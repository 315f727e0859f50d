"""
Permission checking utilities.

Pure lookups against the static matrix in ``roles``; nothing here touches
storage or request state.
"""

from .roles import (
    ACCESS_HIERARCHY,
    DISPLAY_NAMES,
    LOWEST_ACCESS_LEVEL,
    PERMISSIONS_MATRIX,
    ROLE_ALIASES,
    AccessLevel,
    Permission,
)


def normalize_role(raw: str | AccessLevel | None) -> AccessLevel:
    """
    Map a free-form access level string to a canonical ``AccessLevel``.

    Unknown, empty or malformed values fall back to the lowest level
    (``entrenador``).
    """
    if isinstance(raw, AccessLevel):
        return raw
    if not isinstance(raw, str):
        return LOWEST_ACCESS_LEVEL
    return ROLE_ALIASES.get(raw.strip().lower(), LOWEST_ACCESS_LEVEL)


def rank(role: AccessLevel | str) -> int:
    """Hierarchy rank of a role; 1 is the most privileged."""
    return ACCESS_HIERARCHY[normalize_role(role)]


def has_permission(role: AccessLevel | str, permission: Permission) -> bool:
    return permission in PERMISSIONS_MATRIX[normalize_role(role)]


def has_any_permission(role: AccessLevel | str, permissions) -> bool:
    return any(has_permission(role, p) for p in permissions)


def get_permissions_for_role(role: AccessLevel | str) -> list[Permission]:
    """Permissions of a role, in declaration order."""
    granted = PERMISSIONS_MATRIX[normalize_role(role)]
    return [p for p in Permission if p in granted]


def can_manage(actor_role: AccessLevel | str, target_role: AccessLevel | str) -> bool:
    """
    True when ``actor_role`` ranks at or above ``target_role``.

    gerente can never manage direccion, whatever the numeric comparison says.
    """
    actor = normalize_role(actor_role)
    target = normalize_role(target_role)

    if actor == AccessLevel.GERENTE and target == AccessLevel.DIRECCION:
        return False

    return ACCESS_HIERARCHY[actor] <= ACCESS_HIERARCHY[target]


def meets_access_level(role: AccessLevel | str, min_level: AccessLevel | str) -> bool:
    return rank(role) <= rank(min_level)


def get_role_display_name(role: AccessLevel | str) -> str:
    return DISPLAY_NAMES[normalize_role(role)]
