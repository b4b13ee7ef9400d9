from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from .config import settings


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    return now_utc().astimezone(ZoneInfo(settings.timezone))


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
