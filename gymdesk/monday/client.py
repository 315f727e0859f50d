"""
monday.com GraphQL client.

``BoardClient`` is the contract the sync manager depends on; ``MondayClient``
implements it over HTTP with httpx.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx

from gymdesk.config import Settings
from gymdesk.utils import Logger
from gymdesk.utils.exceptions import MondayAPIError

logger = Logger("monday.client")

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

ITEM_FIELDS = """
    id
    name
    column_values {
        id
        text
        value
    }
"""


@dataclass
class ItemsPage:
    items: list[dict] = field(default_factory=list)
    cursor: Optional[str] = None


class BoardClient(Protocol):
    async def create_item(self, board_id: str, name: str, column_values: dict) -> str: ...

    async def update_item(self, board_id: str, item_id: str, column_values: dict) -> None: ...

    async def get_item(self, item_id: str) -> Optional[dict]: ...

    async def list_items(self, board_id: str, cursor: Optional[str] = None) -> ItemsPage: ...

    async def test_connection(self) -> bool: ...


class MondayClient:
    def __init__(
        self,
        token: Optional[str],
        api_url: str = "https://api.monday.com/v2",
        api_version: str = "2023-10",
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_delay_ms: int = 1000,
        page_size: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.api_url = api_url
        self.api_version = api_version
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay_ms / 1000
        self.page_size = page_size
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, config: Settings) -> "MondayClient":
        return cls(
            token=config.monday_api_token,
            api_url=config.monday_api_url,
            api_version=config.monday_api_version,
            timeout=config.monday_timeout_seconds,
            retry_attempts=config.monday_retry_attempts,
            retry_delay_ms=config.monday_retry_delay_ms,
            page_size=config.monday_page_size,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "API-Version": self.api_version,
                },
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    # ── Transport ────────────────────────────────────────────────
    async def execute(self, query: str, variables: Optional[dict] = None) -> dict:
        """Run a GraphQL document and return its ``data`` object."""
        if not self.token:
            raise MondayAPIError("MONDAY_API_TOKEN is not configured")

        payload = {"query": query, "variables": variables or {}}
        headers = {"Authorization": self.token}
        last_error: Optional[str] = None

        for attempt in range(1, self.retry_attempts + 1):
            try:
                response = await self.http.post(self.api_url, json=payload, headers=headers)
            except httpx.TransportError as exc:
                last_error = f"monday API unreachable: {exc}"
            else:
                if response.status_code in RETRYABLE_STATUS:
                    last_error = f"monday API error: {response.status_code}"
                elif response.status_code >= 400:
                    raise MondayAPIError(f"monday API error: {response.status_code}")
                else:
                    return self._unwrap(response)

            if attempt < self.retry_attempts:
                logger.warning(f"{last_error} (attempt {attempt}/{self.retry_attempts}), retrying")
                await asyncio.sleep(self.retry_delay * attempt)

        raise MondayAPIError(last_error)

    @staticmethod
    def _unwrap(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            raise MondayAPIError("monday API returned a non-JSON response")

        if body.get("errors"):
            message = body["errors"][0].get("message", "unknown error")
            logger.error(f"monday API errors: {body['errors']}")
            raise MondayAPIError(f"monday API error: {message}")
        if body.get("error_message"):
            raise MondayAPIError(f"monday API error: {body['error_message']}")
        return body.get("data") or {}

    # ── Items ────────────────────────────────────────────────────
    async def create_item(self, board_id: str, name: str, column_values: dict) -> str:
        mutation = """
            mutation ($boardId: ID!, $itemName: String!, $columnValues: JSON!) {
                create_item(board_id: $boardId, item_name: $itemName, column_values: $columnValues) {
                    id
                }
            }
        """
        data = await self.execute(
            mutation,
            {
                "boardId": str(board_id),
                "itemName": name,
                "columnValues": json.dumps(column_values),
            },
        )
        item = data.get("create_item") or {}
        if not item.get("id"):
            raise MondayAPIError("monday API did not return an item id")
        return str(item["id"])

    async def update_item(self, board_id: str, item_id: str, column_values: dict) -> None:
        mutation = """
            mutation ($boardId: ID!, $itemId: ID!, $columnValues: JSON!) {
                change_multiple_column_values(board_id: $boardId, item_id: $itemId, column_values: $columnValues) {
                    id
                }
            }
        """
        data = await self.execute(
            mutation,
            {
                "boardId": str(board_id),
                "itemId": str(item_id),
                "columnValues": json.dumps(column_values),
            },
        )
        if not data.get("change_multiple_column_values"):
            raise MondayAPIError(f"monday item {item_id} could not be updated")

    async def get_item(self, item_id: str) -> Optional[dict]:
        query = f"""
            query ($itemId: ID!) {{
                items(ids: [$itemId]) {{ {ITEM_FIELDS} }}
            }}
        """
        data = await self.execute(query, {"itemId": str(item_id)})
        items = data.get("items") or []
        return items[0] if items else None

    async def list_items(self, board_id: str, cursor: Optional[str] = None) -> ItemsPage:
        """One page of board items; pass the returned cursor to continue."""
        if cursor is None:
            query = f"""
                query ($boardId: ID!, $limit: Int!) {{
                    boards(ids: [$boardId]) {{
                        items_page(limit: $limit) {{
                            cursor
                            items {{ {ITEM_FIELDS} }}
                        }}
                    }}
                }}
            """
            data = await self.execute(query, {"boardId": str(board_id), "limit": self.page_size})
            boards = data.get("boards") or []
            page = (boards[0] or {}).get("items_page") if boards else None
        else:
            query = f"""
                query ($cursor: String!, $limit: Int!) {{
                    next_items_page(cursor: $cursor, limit: $limit) {{
                        cursor
                        items {{ {ITEM_FIELDS} }}
                    }}
                }}
            """
            data = await self.execute(query, {"cursor": cursor, "limit": self.page_size})
            page = data.get("next_items_page")

        page = page or {}
        return ItemsPage(items=page.get("items") or [], cursor=page.get("cursor"))

    async def test_connection(self) -> bool:
        data = await self.execute("query { me { id name } }")
        return bool((data.get("me") or {}).get("id"))
