"""
JSON serializer utility for converting Python objects and ORM rows to JSON-safe values
"""
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID
from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel
from sqlalchemy import inspect

from app.utils.datetime_utils import iso_8601_utc


def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively sanitize Python objects for JSON storage (datetime/date -> isoformat, Enum -> value, etc.).
    Use before saving to any JSON column (audit_logs.old_data / new_data).
    """
    return to_json_safe(obj)


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert Python objects to JSON-safe values

    Args:
        value: Any Python object to convert

    Returns:
        JSON-safe equivalent of the input value
    """
    if value is None:
        return None
    elif isinstance(value, bool) or isinstance(value, (str, int, float)):
        return value
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return iso_8601_utc(value)
    elif isinstance(value, (date, time)):
        return value.isoformat()
    elif isinstance(value, Decimal):
        return float(value)
    elif isinstance(value, UUID):
        return str(value)
    elif isinstance(value, dict):
        return {k: to_json_safe(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_safe(item) for item in value]
    elif isinstance(value, BaseModel):
        return to_json_safe(value.model_dump())
    return str(value)


def row_snapshot(instance: Any, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    Full-row snapshot of an ORM instance as a JSON-safe dict.

    Every mapped column is included except those listed in ``exclude`` and in
    the model's ``__audit_exclude__`` (e.g. password hashes).
    """
    skip = set(exclude or ()) | set(getattr(instance, "__audit_exclude__", ()))
    mapper = inspect(instance).mapper
    return sanitize_for_json({
        attr.key: getattr(instance, attr.key)
        for attr in mapper.column_attrs
        if attr.key not in skip
    })
