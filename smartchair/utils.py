# Helper utilities
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form stored in the database)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_timestamp(iso_timestamp: str) -> datetime:
    """
    Convert an ISO 8601 string to a naive UTC datetime
    
    Raises:
        ValueError: if the string is not a valid timestamp
    """
    dt = datetime.fromisoformat(iso_timestamp.replace('Z', '+00:00'))
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_iso(dt: datetime) -> str:
    """Naive UTC datetime -> ISO string with Z suffix"""
    return dt.isoformat() + "Z"
