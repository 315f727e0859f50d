"""
Access levels, permissions and the permission matrix.

Access levels are ordered by privilege; a lower rank number means more
access:

    direccion (1) > gerente (2) > ventas (3) > recepcionista (4) > entrenador (5)

The matrix is a module-level constant built once at import time.
"""

from enum import Enum
from types import MappingProxyType


class AccessLevel(str, Enum):
    DIRECCION = "direccion"
    GERENTE = "gerente"
    VENTAS = "ventas"
    RECEPCIONISTA = "recepcionista"
    ENTRENADOR = "entrenador"


class Permission(str, Enum):
    # Financial information (sensitive)
    VIEW_FINANCIAL_METRICS = "view_financial_metrics"
    VIEW_TOTAL_REVENUE = "view_total_revenue"
    VIEW_EMPLOYEE_SALARIES = "view_employee_salaries"
    VIEW_PROFIT_REPORTS = "view_profit_reports"

    # Employee management
    MANAGE_ALL_EMPLOYEES = "manage_all_employees"
    MANAGE_LOWER_EMPLOYEES = "manage_lower_employees"
    VIEW_EMPLOYEE_DETAILS = "view_employee_details"

    # Members
    CREATE_MEMBERS = "create_members"
    EDIT_MEMBERS = "edit_members"
    DELETE_MEMBERS = "delete_members"
    VIEW_MEMBERS = "view_members"

    # Sales and inventory
    REGISTER_PRODUCT_SALES = "register_product_sales"
    REGISTER_SERVICE_SALES = "register_service_sales"
    VIEW_INVENTORY = "view_inventory"
    MANAGE_INVENTORY = "manage_inventory"
    APPLY_DISCOUNTS = "apply_discounts"

    # Reports and analytics
    VIEW_BASIC_METRICS = "view_basic_metrics"
    VIEW_DETAILED_REPORTS = "view_detailed_reports"

    # System administration
    SYSTEM_SETTINGS = "system_settings"
    VIEW_AUDIT_LOGS = "view_audit_logs"


ACCESS_HIERARCHY: MappingProxyType = MappingProxyType(
    {
        AccessLevel.DIRECCION: 1,
        AccessLevel.GERENTE: 2,
        AccessLevel.VENTAS: 3,
        AccessLevel.RECEPCIONISTA: 4,
        AccessLevel.ENTRENADOR: 5,
    }
)

LOWEST_ACCESS_LEVEL = AccessLevel.ENTRENADOR

P = Permission

PERMISSIONS_MATRIX: MappingProxyType = MappingProxyType(
    {
        AccessLevel.DIRECCION: frozenset(Permission) - {P.MANAGE_LOWER_EMPLOYEES},
        AccessLevel.GERENTE: frozenset(
            {
                P.VIEW_FINANCIAL_METRICS,
                P.VIEW_TOTAL_REVENUE,
                P.VIEW_PROFIT_REPORTS,
                P.MANAGE_LOWER_EMPLOYEES,
                P.VIEW_EMPLOYEE_DETAILS,
                P.CREATE_MEMBERS,
                P.EDIT_MEMBERS,
                P.DELETE_MEMBERS,
                P.VIEW_MEMBERS,
                P.REGISTER_PRODUCT_SALES,
                P.REGISTER_SERVICE_SALES,
                P.VIEW_INVENTORY,
                P.MANAGE_INVENTORY,
                P.APPLY_DISCOUNTS,
                P.VIEW_BASIC_METRICS,
                P.VIEW_DETAILED_REPORTS,
                P.VIEW_AUDIT_LOGS,
            }
        ),
        AccessLevel.VENTAS: frozenset(
            {
                P.CREATE_MEMBERS,
                P.EDIT_MEMBERS,
                P.VIEW_MEMBERS,
                P.REGISTER_PRODUCT_SALES,
                P.REGISTER_SERVICE_SALES,
                P.VIEW_INVENTORY,
                P.VIEW_BASIC_METRICS,
            }
        ),
        AccessLevel.RECEPCIONISTA: frozenset(
            {
                P.CREATE_MEMBERS,
                P.VIEW_MEMBERS,
                P.REGISTER_PRODUCT_SALES,
                P.REGISTER_SERVICE_SALES,
                P.VIEW_BASIC_METRICS,
            }
        ),
        AccessLevel.ENTRENADOR: frozenset(
            {
                P.CREATE_MEMBERS,
                P.VIEW_MEMBERS,
                P.REGISTER_SERVICE_SALES,
                P.VIEW_BASIC_METRICS,
            }
        ),
    }
)

# Legacy strings still found in older employee records
ROLE_ALIASES: MappingProxyType = MappingProxyType(
    {
        "direccion": AccessLevel.DIRECCION,
        "dirección": AccessLevel.DIRECCION,
        "director": AccessLevel.DIRECCION,
        "admin": AccessLevel.DIRECCION,
        "gerente": AccessLevel.GERENTE,
        "manager": AccessLevel.GERENTE,
        "ventas": AccessLevel.VENTAS,
        "sales": AccessLevel.VENTAS,
        "recepcionista": AccessLevel.RECEPCIONISTA,
        "reception": AccessLevel.RECEPCIONISTA,
        "staff": AccessLevel.RECEPCIONISTA,
        "entrenador": AccessLevel.ENTRENADOR,
        "trainer": AccessLevel.ENTRENADOR,
    }
)

DISPLAY_NAMES: MappingProxyType = MappingProxyType(
    {
        AccessLevel.DIRECCION: "Dirección",
        AccessLevel.GERENTE: "Gerente",
        AccessLevel.VENTAS: "Ventas",
        AccessLevel.RECEPCIONISTA: "Recepcionista",
        AccessLevel.ENTRENADOR: "Entrenador",
    }
)
