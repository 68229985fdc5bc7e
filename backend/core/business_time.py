# backend/core/business_time.py

"""
Helpers for the canteen's local business day.

Timestamps are stored as naive UTC; "today", daily reports and invoice
numbering all follow the configured business timezone instead.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .config import settings


def business_tz(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.business_timezone)


def business_now(tz_name: Optional[str] = None) -> datetime:
    return datetime.now(business_tz(tz_name))


def business_today(now: Optional[datetime] = None) -> date:
    return (now or business_now()).date()


def to_business_time(value: datetime) -> datetime:
    """Convert a stored naive-UTC timestamp to the business timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(business_tz())


def day_bounds_utc(day: date) -> Tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of a business day as naive UTC."""
    tz = business_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )
