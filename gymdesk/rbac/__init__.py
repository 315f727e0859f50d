from .roles import (
    ACCESS_HIERARCHY,
    PERMISSIONS_MATRIX,
    AccessLevel,
    Permission,
)
from .permissions import (
    can_manage,
    get_permissions_for_role,
    get_role_display_name,
    has_any_permission,
    has_permission,
    meets_access_level,
    normalize_role,
    rank,
)

__all__ = [
    "ACCESS_HIERARCHY",
    "PERMISSIONS_MATRIX",
    "AccessLevel",
    "Permission",
    "can_manage",
    "get_permissions_for_role",
    "get_role_display_name",
    "has_any_permission",
    "has_permission",
    "meets_access_level",
    "normalize_role",
    "rank",
]
