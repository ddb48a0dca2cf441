from datetime import datetime, timezone

from sqlalchemy import DateTime

# Column type of every timestamp. SQLite hands these back without tzinfo.
UTCDateTime = DateTime(timezone=True)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a timestamp read back without tzinfo"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
