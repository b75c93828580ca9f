from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def iso(value: Optional[Any]) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
