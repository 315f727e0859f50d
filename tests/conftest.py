import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from gymdesk.app import app
from gymdesk.auth.session import issue_session
from gymdesk.config import settings, store_manager
from gymdesk.middleware import LIMITERS
from gymdesk.monday.client import ItemsPage
from gymdesk.monday.sync import sync_guard
from gymdesk.rbac import AccessLevel
from gymdesk.store import EMPLOYEES, SqlEntityStore
from gymdesk.utils.exceptions import MondayAPIError


@pytest.fixture(autouse=True)
def reset_process_state():
    for limiter in LIMITERS.values():
        limiter.clear()
    sync_guard.release()
    yield
    for limiter in LIMITERS.values():
        limiter.clear()
    sync_guard.release()


@pytest_asyncio.fixture
async def store():
    """A fresh in-memory SQL store for service-level tests."""
    sql = SqlEntityStore("sqlite://")
    await sql.connect()
    yield sql
    sql.close()


# ── API fixtures ─────────────────────────────────────────────────
def run(coro):
    return asyncio.run(coro)


def employee_payload(level: AccessLevel, **overrides) -> dict:
    data = {
        "first_name": level.value.capitalize(),
        "paternal_last_name": "Prueba",
        "email": f"{level.value}@gymdesk.mx",
        "primary_phone": "5551234567",
        "position": "Staff",
        "department": "General",
        "hire_date": datetime(2023, 1, 9, tzinfo=timezone.utc),
        "status": "active",
        "access_level": level.value,
        "salary": 18000.0,
    }
    data.update(overrides)
    return data


@pytest.fixture
def api_store():
    sql = SqlEntityStore("sqlite://")
    run(sql.connect())
    store_manager.use(sql)
    return sql


@pytest.fixture
def staff(api_store) -> dict[AccessLevel, dict]:
    """One active employee per access level."""
    return {
        level: run(api_store.create(EMPLOYEES, employee_payload(level)))
        for level in AccessLevel
    }


@pytest.fixture
def client(api_store):
    with TestClient(app) as test_client:
        yield test_client


def session_headers(employee: dict) -> dict:
    token, _ = issue_session(employee)
    return {"cookie": f"{settings.session_cookie_name}={token}"}


@pytest.fixture
def as_role(staff):
    def headers(level: AccessLevel) -> dict:
        return session_headers(staff[level])

    return headers


# ── monday.com stand-in ──────────────────────────────────────────
class FakeBoardClient:
    """In-memory boards implementing the ``BoardClient`` protocol."""

    def __init__(self, page_size: int = 2):
        self.boards: dict[str, list[dict]] = {}
        self.created: list[tuple[str, str, dict]] = []
        self.updated: list[tuple[str, str, dict]] = []
        self.fail_names: set[str] = set()
        self.fail_updates = False
        self.connected = True
        self.page_size = page_size
        self._next_id = 5000

    def add_item(self, board_id: str, item: dict) -> dict:
        self.boards.setdefault(str(board_id), []).append(item)
        return item

    async def create_item(self, board_id: str, name: str, column_values: dict) -> str:
        if name in self.fail_names:
            raise MondayAPIError("monday API error: 500")
        self._next_id += 1
        item_id = str(self._next_id)
        self.created.append((board_id, name, column_values))
        self.add_item(board_id, {"id": item_id, "name": name, "column_values": []})
        return item_id

    async def update_item(self, board_id: str, item_id: str, column_values: dict) -> None:
        if self.fail_updates:
            raise MondayAPIError(f"monday item {item_id} could not be updated")
        self.updated.append((board_id, item_id, column_values))

    async def get_item(self, item_id: str) -> Optional[dict]:
        for items in self.boards.values():
            for item in items:
                if item["id"] == str(item_id):
                    return item
        return None

    async def list_items(self, board_id: str, cursor: Optional[str] = None) -> ItemsPage:
        items = self.boards.get(str(board_id), [])
        start = int(cursor or 0)
        end = start + self.page_size
        return ItemsPage(items=items[start:end], cursor=str(end) if end < len(items) else None)

    async def test_connection(self) -> bool:
        return self.connected


@pytest.fixture
def board_client():
    return FakeBoardClient()


@pytest.fixture
def board_ids():
    return {
        "members": "101",
        "employees": "102",
        "contracts": "103",
        "payments": "104",
    }
