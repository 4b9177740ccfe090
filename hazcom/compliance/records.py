"""
Uniform field access over inventory and roster records.

The compliance engine accepts plain dicts (API payloads, fixtures) as well as
ORM objects from the repositories, so every read goes through record_value().
"""

import enum
import logging
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


def record_value(record: Any, name: str, default: Any = None) -> Any:
    """
    Read a field from a mapping or an attribute-style record.

    Enum-typed ORM columns (sds_status, status) come back as their plain
    string values so rows and dicts compare the same way.
    """
    if isinstance(record, Mapping):
        value = record.get(name, default)
    else:
        value = getattr(record, name, default)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the form every stored timestamp uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def record_name(record: Any, name_field: str = 'name') -> str:
    value = record_value(record, name_field)
    return value if isinstance(value, str) and value.strip() else '(unnamed)'


def to_naive_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a date-like value to a naive UTC datetime.

    Accepts datetime, date and ISO-8601 strings ("2025-03-20",
    "2025-03-20T08:00:00Z"). Dates map to midnight. Unparseable values
    return None so callers treat them as "no date recorded".
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Unparseable date value '{value}', treating as missing")
            return None
    else:
        logger.warning(f"Unsupported date type {type(value).__name__}, treating as missing")
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
