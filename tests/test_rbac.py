import pytest

from gymdesk.rbac import (
    PERMISSIONS_MATRIX,
    AccessLevel,
    Permission,
    can_manage,
    get_permissions_for_role,
    has_any_permission,
    has_permission,
    meets_access_level,
    normalize_role,
    rank,
)
from gymdesk.rbac.permissions import get_role_display_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("direccion", AccessLevel.DIRECCION),
        ("Dirección", AccessLevel.DIRECCION),
        ("admin", AccessLevel.DIRECCION),
        ("  MANAGER ", AccessLevel.GERENTE),
        ("sales", AccessLevel.VENTAS),
        ("staff", AccessLevel.RECEPCIONISTA),
        ("trainer", AccessLevel.ENTRENADOR),
        ("", AccessLevel.ENTRENADOR),
        ("superuser", AccessLevel.ENTRENADOR),
        (None, AccessLevel.ENTRENADOR),
        (42, AccessLevel.ENTRENADOR),
    ],
)
def test_normalize_role(raw, expected):
    assert normalize_role(raw) == expected


def test_hierarchy_ranks():
    assert [rank(level) for level in AccessLevel] == [1, 2, 3, 4, 5]


def test_direccion_holds_everything_but_manage_lower():
    granted = set(get_permissions_for_role(AccessLevel.DIRECCION))
    assert granted == set(Permission) - {Permission.MANAGE_LOWER_EMPLOYEES}


def test_only_direccion_sees_salaries_and_settings():
    for level in AccessLevel:
        allowed = level == AccessLevel.DIRECCION
        assert has_permission(level, Permission.VIEW_EMPLOYEE_SALARIES) is allowed
        assert has_permission(level, Permission.SYSTEM_SETTINGS) is allowed


def test_entrenador_cannot_sell_products():
    assert not has_permission("entrenador", Permission.REGISTER_PRODUCT_SALES)
    assert has_permission("entrenador", Permission.REGISTER_SERVICE_SALES)


def test_every_level_can_create_members_and_view_basic_metrics():
    for level in AccessLevel:
        assert Permission.CREATE_MEMBERS in PERMISSIONS_MATRIX[level]
        assert Permission.VIEW_BASIC_METRICS in PERMISSIONS_MATRIX[level]


def test_unknown_role_gets_lowest_permissions():
    assert get_permissions_for_role("bogus") == get_permissions_for_role(AccessLevel.ENTRENADOR)


def test_permission_order_follows_declaration():
    perms = get_permissions_for_role(AccessLevel.GERENTE)
    declared = [p for p in Permission if p in perms]
    assert perms == declared


def test_has_any_permission():
    assert has_any_permission(
        "recepcionista", [Permission.MANAGE_INVENTORY, Permission.VIEW_MEMBERS]
    )
    assert not has_any_permission(
        "recepcionista", [Permission.MANAGE_INVENTORY, Permission.APPLY_DISCOUNTS]
    )


@pytest.mark.parametrize(
    "actor, target, expected",
    [
        ("direccion", "direccion", True),
        ("direccion", "entrenador", True),
        ("gerente", "direccion", False),
        ("gerente", "gerente", True),
        ("gerente", "ventas", True),
        ("ventas", "gerente", False),
        ("recepcionista", "entrenador", True),
        ("entrenador", "recepcionista", False),
    ],
)
def test_can_manage(actor, target, expected):
    assert can_manage(actor, target) is expected


def test_meets_access_level():
    assert meets_access_level("gerente", AccessLevel.RECEPCIONISTA)
    assert meets_access_level("recepcionista", AccessLevel.RECEPCIONISTA)
    assert not meets_access_level("entrenador", AccessLevel.RECEPCIONISTA)


def test_display_names():
    assert get_role_display_name("admin") == "Dirección"
    assert get_role_display_name(AccessLevel.VENTAS) == "Ventas"
