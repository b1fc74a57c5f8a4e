from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


# Signed 64-bit: the widest INTEGER any supported backend stores.
SQL_INT_MIN = -(2**63)
SQL_INT_MAX = 2**63 - 1


def fits_sql_integer(value: int) -> bool:
    return SQL_INT_MIN <= value <= SQL_INT_MAX


def format_utc(value: dt.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).isoformat(timespec="microseconds")


def parse_utc(value: str) -> dt.datetime:
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


class UtcTimestamp(TypeDecorator):
    """
    Timezone-aware datetime stored as fixed-width ISO-8601 UTC text:
    - naive values are taken as UTC
    - microseconds are always rendered, so string order is time order
    """

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        if isinstance(value, dt.datetime):
            return format_utc(value)
        return str(value)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        if isinstance(value, dt.datetime):
            return value if value.tzinfo is not None else value.replace(tzinfo=dt.timezone.utc)
        return parse_utc(str(value))
