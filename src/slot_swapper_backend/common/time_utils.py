'''
Timezone helpers. All timestamps handled by the app are UTC-aware.
'''
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Attaches UTC to naive datetimes (SQLite drops tzinfo on the way back),
    converts aware ones.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
