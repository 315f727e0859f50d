from .helpers import (
    serialize_doc,
    success_response,
    error_response,
    build_pagination,
    page_to_offset,
    drop_none,
    as_datetime,
    normalize_dates,
)
from .logger import Logger

__all__ = [
    "serialize_doc",
    "success_response",
    "error_response",
    "build_pagination",
    "page_to_offset",
    "drop_none",
    "as_datetime",
    "normalize_dates",
    "Logger",
]
