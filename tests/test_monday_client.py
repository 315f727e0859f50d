import json

import httpx
import pytest

from gymdesk.monday.client import MondayClient
from gymdesk.monday.columns import from_board_item, to_column_values
from gymdesk.store import MEMBERS
from gymdesk.utils.exceptions import MondayAPIError


def _client(handler, **kwargs) -> MondayClient:
    options = {"retry_attempts": 3, "retry_delay_ms": 0}
    options.update(kwargs)
    return MondayClient("test-token", transport=httpx.MockTransport(handler), **options)


async def test_sends_token_and_version_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["version"] = request.headers["api-version"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"create_item": {"id": "123"}}})

    client = _client(handler)
    item_id = await client.create_item("101", "Ana López", {"email": "ana@gymdesk.mx"})
    await client.aclose()

    assert item_id == "123"
    assert seen["auth"] == "test-token"
    assert seen["version"] == "2023-10"
    assert json.loads(seen["body"]["variables"]["columnValues"]) == {"email": "ana@gymdesk.mx"}


async def test_retries_server_errors():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"data": {"me": {"id": "1", "name": "bot"}}})

    client = _client(handler)
    assert await client.test_connection() is True
    assert len(calls) == 3


async def test_gives_up_after_retry_budget():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = _client(handler, retry_attempts=2)
    with pytest.raises(MondayAPIError, match="500"):
        await client.test_connection()
    assert len(calls) == 2


async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401)

    client = _client(handler)
    with pytest.raises(MondayAPIError):
        await client.test_connection()
    assert len(calls) == 1


async def test_graphql_errors_raise():
    def handler(request):
        return httpx.Response(200, json={"errors": [{"message": "Column not found"}]})

    with pytest.raises(MondayAPIError, match="Column not found"):
        await _client(handler).get_item("1")


async def test_transport_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(MondayAPIError, match="unreachable"):
        await _client(handler, retry_attempts=2).test_connection()
    assert len(calls) == 2


async def test_missing_token():
    client = MondayClient(None)
    with pytest.raises(MondayAPIError, match="not configured"):
        await client.test_connection()


async def test_list_items_follows_cursor():
    def handler(request):
        body = json.loads(request.content)
        if "cursor" in body["variables"]:
            page = {"cursor": None, "items": [{"id": "3", "name": "C", "column_values": []}]}
            return httpx.Response(200, json={"data": {"next_items_page": page}})
        page = {
            "cursor": "abc",
            "items": [
                {"id": "1", "name": "A", "column_values": []},
                {"id": "2", "name": "B", "column_values": []},
            ],
        }
        return httpx.Response(200, json={"data": {"boards": [{"items_page": page}]}})

    client = _client(handler)
    first = await client.list_items("101")
    second = await client.list_items("101", first.cursor)

    assert [i["id"] for i in first.items] == ["1", "2"]
    assert first.cursor == "abc"
    assert [i["id"] for i in second.items] == ["3"]
    assert second.cursor is None


def test_column_values_skip_empty_fields():
    values = to_column_values(
        MEMBERS,
        {
            "first_name": "Ana",
            "email": "ana@gymdesk.mx",
            "primary_phone": "5551234567",
            "monthly_amount": "650",
            "start_date": "2024-02-01T00:00:00+00:00",
            "city": "",
        },
    )

    assert values["text"] == "Ana"
    assert values["phone"] == {"phone": "5551234567", "countryShortName": "MX"}
    assert values["numbers"] == 650.0
    assert values["date__1"] == {"date": "2024-02-01"}
    assert "text__3" not in values


def test_board_item_to_fields():
    data = from_board_item(
        MEMBERS,
        {
            "id": 9,
            "name": "Ana López",
            "column_values": [
                {"id": "phone", "text": "+52 555", "value": json.dumps({"phone": "5551234567"})},
                {"id": "date__1", "text": "2024-02-01", "value": json.dumps({"date": "2024-02-01"})},
                {"id": "dropdown", "text": "Mensual", "value": None},
                {"id": "text__3", "text": "", "value": None},
            ],
        },
    )

    assert data["monday_item_id"] == "9"
    assert data["primary_phone"] == "5551234567"
    assert data["start_date"].isoformat().startswith("2024-02-01")
    assert data["selected_plan"] == "Mensual"
    assert "city" not in data
