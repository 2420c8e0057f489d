"""
Row conversion helpers shared by the Supabase repositories.

PostgREST returns dates and timestamps as ISO strings.
"""
from datetime import date, datetime
from typing import Any, Optional


def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def iso(value: Any) -> Optional[str]:
    """Serialize a date/datetime for a PostgREST filter or RPC payload."""
    if value is None:
        return None
    return value.isoformat()
