"""
Calendar helpers. Report dates follow the office's local day (Asia/Tokyo by default),
not the server clock.
"""
from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_TZ = "Asia/Tokyo"

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)


def _local_now(now: datetime | None, tz_name: str) -> datetime:
    tz = ZoneInfo(tz_name)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        # Naive datetimes are treated as UTC
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def today_jst(now: datetime | None = None, tz_name: str = DEFAULT_TZ) -> str:
    """Today's date in the report timezone as YYYY-MM-DD."""
    return _local_now(now, tz_name).strftime("%Y-%m-%d")


def current_month_jst(now: datetime | None = None, tz_name: str = DEFAULT_TZ) -> str:
    """Current month in the report timezone as YYYY-MM."""
    return _local_now(now, tz_name).strftime("%Y-%m")


def parse_date(s: str | None) -> date | None:
    """Parse a strict YYYY-MM-DD date string. Raises ValueError on any other format."""
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    if not _DATE_RE.match(s):
        raise ValueError(f"Invalid date {s!r}; expected YYYY-MM-DD.")
    return date.fromisoformat(s)


def month_bounds(month: str) -> tuple[date, date]:
    """First and last day of a YYYY-MM month. Raises ValueError on bad input."""
    m = _MONTH_RE.match((month or "").strip())
    if not m:
        raise ValueError(f"Invalid month {month!r}; expected YYYY-MM.")
    year, mon = int(m.group(1)), int(m.group(2))
    if not 1 <= mon <= 12:
        raise ValueError(f"Invalid month {month!r}; month must be 01-12.")
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last_day)


def format_date(value, fmt: str = "%Y-%m-%d") -> str:
    if value is None:
        return "—"
    if hasattr(value, "strftime"):
        return value.strftime(fmt)
    return str(value)


def isoformat_or_none(value) -> str | None:
    return value.isoformat() if value is not None else None
