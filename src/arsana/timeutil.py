from __future__ import annotations

from datetime import date, datetime, time, timezone
import re
from zoneinfo import ZoneInfo

JAKARTA_TZ = ZoneInfo("Asia/Jakarta")


def parse_date_ymd(s: str) -> date:
    """Parse strict YYYY-MM-DD string into a date. Raises ValueError."""
    return datetime.strptime(s, "%Y-%m-%d").date()


def parse_time_hhmm(s: str) -> time:
    """Parse strict HH:MM string into a time. Raises ValueError."""
    if not re.fullmatch(r"\d{2}:\d{2}", s):
        raise ValueError("Time must match HH:MM")

    hour = int(s[0:2])
    minute = int(s[3:5])

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError("Hour/minute out of range")

    return time(hour=hour, minute=minute)


def today_in(tz: ZoneInfo = JAKARTA_TZ) -> date:
    """Current calendar date in the given timezone."""
    return datetime.now(tz).date()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def dt_to_db(dt: datetime) -> str:
    """Convert tz-aware datetime to ISO-8601 string for DB storage."""
    if dt.tzinfo is None:
        raise ValueError("dt_to_db requires a tz-aware datetime")
    return dt.isoformat()


def format_date_id(d: date) -> str:
    """Render a date the way the id-ID locale short format does: d/m/yyyy."""
    return f"{d.day}/{d.month}/{d.year}"
