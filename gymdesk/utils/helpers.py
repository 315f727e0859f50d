import math
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from bson import ObjectId
from fastapi.responses import JSONResponse


def serialize_doc(doc):
    """Recursively convert ObjectIds, datetimes and Decimals into JSON-safe values."""
    if not doc:
        return doc

    if isinstance(doc, list):
        return [serialize_doc(d) for d in doc]

    if isinstance(doc, dict):
        clean = {}
        for k, v in doc.items():
            if isinstance(v, ObjectId):
                clean[k] = str(v)
            elif isinstance(v, (datetime, date)):
                clean[k] = v.isoformat()
            elif isinstance(v, Decimal):
                clean[k] = float(v)
            elif isinstance(v, (dict, list)):
                clean[k] = serialize_doc(v)
            else:
                clean[k] = v
        return clean

    return doc


def success_response(
    data: Optional[Any] = None,
    message: Optional[str] = None,
    code: int = 200,
    pagination: Optional[dict] = None,
    **extra: Any,
) -> JSONResponse:
    """Standard success JSON response."""
    content: dict[str, Any] = {"success": True}
    if message:
        content["message"] = message
    if data is not None:
        content["data"] = serialize_doc(data)
    if pagination is not None:
        content["pagination"] = pagination
    content.update(serialize_doc(extra) or {})
    return JSONResponse(status_code=code, content=content)


def error_response(
    message: str,
    code: int = 400,
    details: Optional[Any] = None,
) -> JSONResponse:
    """Standard error JSON response."""
    content: dict[str, Any] = {"success": False, "error": message}
    if details:
        content["details"] = serialize_doc(details)
    return JSONResponse(status_code=code, content=content)


def build_pagination(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_more": page < total_pages,
    }


def page_to_offset(page: int, limit: int) -> int:
    return max(page - 1, 0) * limit


def drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


def as_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce stored date values to an aware UTC datetime.

    Backends hand dates back differently: Motor returns naive datetimes, the
    SQL attributes column returns ISO strings.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_dates(data: dict) -> dict:
    """Turn plain ``date`` values into midnight UTC datetimes so every backend can store them."""
    clean = {}
    for key, value in data.items():
        if isinstance(value, date) and not isinstance(value, datetime):
            clean[key] = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        elif isinstance(value, dict):
            clean[key] = normalize_dates(value)
        elif isinstance(value, list):
            clean[key] = [normalize_dates(v) if isinstance(v, dict) else v for v in value]
        else:
            clean[key] = value
    return clean
