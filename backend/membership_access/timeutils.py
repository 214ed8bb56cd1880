"""Clock helpers. Datetimes are stored as naive UTC, matching the DB columns."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
