import os
from datetime import date, datetime
from zoneinfo import ZoneInfo

APP_TIMEZONE = ZoneInfo((os.environ.get("APP_TIMEZONE") or "UTC").strip() or "UTC")

_FALLBACK_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%b %d %Y", "%b %d, %Y")


def now(tz=None):
    return datetime.now(tz or APP_TIMEZONE).replace(microsecond=0)


def to_iso(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip() or None


def parse_datetime(value):
    """Parse a date-ish value into a ``date`` or ``datetime``.

    Returns None for anything missing or unparseable instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def normalize_to_day(value, tz=None):
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    if isinstance(parsed, datetime):
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(tz or APP_TIMEZONE)
        return parsed.date()
    return parsed


def same_day(value, day, tz=None):
    normalized = normalize_to_day(value, tz=tz)
    return normalized is not None and day is not None and normalized == day


def is_between(day, start, end):
    # inclusive on both ends; an open end matches anything from start onwards
    if day is None or start is None:
        return False
    if end is None:
        return day >= start
    return start <= day <= end


def parse_day_param(raw):
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None
