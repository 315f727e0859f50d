"""
Column mappings between local records and monday.com board items.

Each board column carries one local field. ``connect_boards`` columns link
to items on another board; the sync manager translates between local ids
and monday item ids for them.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from gymdesk.config import settings
from gymdesk.store import CONTRACTS, EMPLOYEES, MEMBERS, PAYMENTS
from gymdesk.utils import as_datetime


@dataclass(frozen=True)
class ColumnMapping:
    field: str
    column_id: str
    type: str
    # Local entity a connect_boards column points at
    link_entity: Optional[str] = None


M = ColumnMapping

COLUMN_MAPPINGS: dict[str, tuple[ColumnMapping, ...]] = {
    MEMBERS: (
        M("first_name", "text", "text"),
        M("paternal_last_name", "text__1", "text"),
        M("maternal_last_name", "text__2", "text"),
        M("email", "email", "email"),
        M("primary_phone", "phone", "phone"),
        M("secondary_phone", "phone__1", "phone"),
        M("date_of_birth", "date", "date"),
        M("status", "status", "status"),
        M("selected_plan", "dropdown", "dropdown"),
        M("monthly_amount", "numbers", "number"),
        M("start_date", "date__1", "date"),
        M("expiration_date", "date__2", "date"),
        M("city", "text__3", "text"),
        M("state", "text__4", "text"),
        M("employee", "text__5", "text"),
        M("direct_debit", "dropdown__1", "dropdown"),
    ),
    CONTRACTS: (
        M("contract_type", "dropdown", "dropdown"),
        M("start_date", "date", "date"),
        M("end_date", "date__1", "date"),
        M("monthly_fee", "numbers", "number"),
        M("status", "status", "status"),
        M("payment_method", "dropdown__1", "dropdown"),
        M("auto_renewal", "checkbox", "checkbox"),
        M("member_id", "connect_boards", "connect_boards", link_entity=MEMBERS),
        M("notes", "text", "text"),
    ),
    PAYMENTS: (
        M("member_id", "connect_boards", "connect_boards", link_entity=MEMBERS),
        M("contract_id", "connect_boards__1", "connect_boards", link_entity=CONTRACTS),
        M("amount", "numbers", "number"),
        M("payment_type", "dropdown", "dropdown"),
        M("status", "status", "status"),
        M("due_date", "date", "date"),
        M("paid_date", "date__1", "date"),
        M("payment_method", "dropdown__1", "dropdown"),
        M("payment_reference", "text", "text"),
        M("currency", "text__1", "text"),
        M("description", "text__2", "text"),
    ),
    EMPLOYEES: (
        M("first_name", "text", "text"),
        M("paternal_last_name", "text__1", "text"),
        M("maternal_last_name", "text__2", "text"),
        M("email", "email", "email"),
        M("primary_phone", "phone", "phone"),
        M("secondary_phone", "phone__1", "phone"),
        M("position", "dropdown", "dropdown"),
        M("department", "dropdown__1", "dropdown"),
        M("status", "status", "status"),
        M("hire_date", "date", "date"),
        M("date_of_birth", "date__1", "date"),
        M("access_level", "dropdown__2", "dropdown"),
        M("salary", "numbers", "number"),
        M("employee_code", "text__3", "text"),
        M("city", "text__4", "text"),
        M("state", "text__5", "text"),
    ),
}

PHONE_COUNTRY = "MX"


def link_mappings(entity: str) -> list[ColumnMapping]:
    return [m for m in COLUMN_MAPPINGS[entity] if m.type == "connect_boards"]


# ── Local → monday ───────────────────────────────────────────────
def _date_string(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    parsed = as_datetime(value)
    return parsed.date().isoformat() if parsed else None


def to_column_value(mapping: ColumnMapping, value: Any) -> Any:
    """monday column payload for one local value, or ``None`` to skip the column."""
    if value is None or value == "":
        return None

    kind = mapping.type
    if kind in ("text", "email"):
        return str(value)
    if kind == "phone":
        return {"phone": str(value), "countryShortName": PHONE_COUNTRY}
    if kind == "date":
        day = _date_string(value)
        return {"date": day} if day else None
    if kind == "status":
        return {"label": str(value)}
    if kind == "number":
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    if kind == "dropdown":
        return {"labels": [str(value)]}
    if kind == "checkbox":
        return {"checked": "true" if value is True or value == "true" else "false"}
    if kind == "connect_boards":
        return {"item_ids": [str(value)]}
    return None


def to_column_values(entity: str, record: dict, linked_item_ids: Optional[dict] = None) -> dict:
    """
    Column values for a board item.

    ``linked_item_ids`` maps connect_boards fields to the monday item id of
    the linked record; links that are not resolved are left out.
    """
    linked_item_ids = linked_item_ids or {}
    values: dict = {}
    for mapping in COLUMN_MAPPINGS[entity]:
        if mapping.type == "connect_boards":
            raw = linked_item_ids.get(mapping.field)
        else:
            raw = record.get(mapping.field)
        column_value = to_column_value(mapping, raw)
        if column_value is not None:
            values[mapping.column_id] = column_value
    return values


def item_name(entity: str, record: dict) -> str:
    if entity in (MEMBERS, EMPLOYEES):
        full = " ".join(
            p for p in (record.get("first_name"), record.get("paternal_last_name")) if p
        )
        return record.get("name") or full or record.get("email") or "Unnamed"
    if entity == CONTRACTS:
        return f"Contract - {record.get('contract_type') or 'standard'}"
    if entity == PAYMENTS:
        return f"Payment - {record.get('payment_type') or 'payment'} - ${record.get('amount', 0)}"
    return record.get("name") or "Item"


# ── monday → local ───────────────────────────────────────────────
def _parse_value(column: dict) -> Any:
    raw = column.get("value")
    if not raw:
        return None
    if isinstance(raw, (dict, list)):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def from_column(mapping: ColumnMapping, column: dict) -> Any:
    """Local value for one board column, or ``None`` when the column is empty."""
    text = column.get("text")
    value = _parse_value(column)
    kind = mapping.type

    if kind in ("text", "email"):
        return text or None
    if kind == "phone":
        if isinstance(value, dict) and value.get("phone"):
            return value["phone"]
        return text or None
    if kind == "date":
        if isinstance(value, dict) and value.get("date"):
            try:
                return datetime.fromisoformat(value["date"]).replace(tzinfo=timezone.utc)
            except ValueError:
                return None
        return None
    if kind == "status":
        if isinstance(value, dict) and isinstance(value.get("label"), str):
            return value["label"].lower()
        return text.lower() if text else None
    if kind == "number":
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    if kind == "dropdown":
        if isinstance(value, dict) and value.get("labels"):
            return value["labels"][0]
        return text or None
    if kind == "checkbox":
        if isinstance(value, dict):
            return str(value.get("checked")).lower() == "true"
        return None
    if kind == "connect_boards":
        if isinstance(value, dict):
            linked = value.get("linkedPulseIds") or []
            if linked and linked[0].get("linkedPulseId") is not None:
                return str(linked[0]["linkedPulseId"])
        return None
    return None


def from_board_item(entity: str, item: dict) -> dict:
    """
    Local field values carried by a board item; only populated columns.

    connect_boards fields hold the linked monday item id at this point.
    """
    data: dict = {"monday_item_id": str(item["id"])}
    if item.get("name"):
        data["name"] = item["name"]

    by_column: dict[str, list[ColumnMapping]] = {}
    for mapping in COLUMN_MAPPINGS[entity]:
        by_column.setdefault(mapping.column_id, []).append(mapping)

    for column in item.get("column_values") or []:
        for mapping in by_column.get(column.get("id"), []):
            value = from_column(mapping, column)
            if value is not None and mapping.field not in data:
                data[mapping.field] = value
    return data


def required_defaults(entity: str, monday_item_id: str, data: dict) -> dict:
    """Fill fields a new local record cannot go without."""
    now = datetime.now(timezone.utc)
    name_parts = (data.get("name") or "").split()

    if entity == MEMBERS:
        return {
            "status": "active",
            "email": f"temp_{monday_item_id}@example.com",
            "primary_phone": "0000000000",
            "first_name": name_parts[0] if name_parts else "Unknown",
            "paternal_last_name": name_parts[1] if len(name_parts) > 1 else "Unknown",
        }
    if entity == EMPLOYEES:
        return {
            "status": "active",
            "email": f"emp_{monday_item_id}@example.com",
            "primary_phone": "0000000000",
            "first_name": name_parts[0] if name_parts else "Unknown",
            "paternal_last_name": name_parts[1] if len(name_parts) > 1 else "Unknown",
            "position": "Staff",
            "department": "General",
            "hire_date": now,
            "access_level": "entrenador",
        }
    if entity == CONTRACTS:
        return {
            "member_id": None,
            "contract_type": "standard",
            "start_date": now,
            "end_date": now,
            "monthly_fee": 0.0,
            "status": "active",
        }
    if entity == PAYMENTS:
        return {
            "amount": 0.0,
            "payment_type": "membership",
            "status": "pending",
            "due_date": now,
            "currency": settings.default_currency,
        }
    return {}
