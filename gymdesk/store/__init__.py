from .base import (
    CONTRACTS,
    EMPLOYEE_CREDENTIALS,
    EMPLOYEES,
    ENTITIES,
    MEMBERS,
    PAYMENTS,
    PRODUCTS,
    SALES,
    SCHEDULE,
    SYNC_ENTITIES,
    WEBHOOK_LOGS,
    EntityStore,
    Page,
    utcnow,
)
from .mongo import MongoEntityStore
from .sql import SqlEntityStore

__all__ = [
    "CONTRACTS",
    "EMPLOYEE_CREDENTIALS",
    "EMPLOYEES",
    "ENTITIES",
    "MEMBERS",
    "PAYMENTS",
    "PRODUCTS",
    "SALES",
    "SCHEDULE",
    "SYNC_ENTITIES",
    "WEBHOOK_LOGS",
    "EntityStore",
    "Page",
    "utcnow",
    "MongoEntityStore",
    "SqlEntityStore",
]
