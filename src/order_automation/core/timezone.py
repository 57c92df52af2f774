"""Business timezone helpers used for gating and message formatting."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from order_automation.config.constants import (
    DATE_FORMAT,
    DATETIME_FORMAT,
    DEFAULT_BUSINESS_TIMEZONE,
    TIME_FORMAT,
)

BUSINESS_TZ = ZoneInfo(DEFAULT_BUSINESS_TIMEZONE)


def now_utc() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (the database stores UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_business_tz(dt: datetime, tz: ZoneInfo = BUSINESS_TZ) -> datetime:
    """Convert an instant to the business timezone."""
    return ensure_aware(dt).astimezone(tz)


def format_date(dt: datetime, tz: ZoneInfo = BUSINESS_TZ) -> str:
    """Format as MM/DD/YYYY in the business timezone."""
    return to_business_tz(dt, tz).strftime(DATE_FORMAT)


def format_time(dt: datetime, tz: ZoneInfo = BUSINESS_TZ) -> str:
    """Format as 24h HH:MM:SS in the business timezone."""
    return to_business_tz(dt, tz).strftime(TIME_FORMAT)


def format_datetime(dt: datetime, tz: ZoneInfo = BUSINESS_TZ) -> str:
    """Format as MM/DD/YYYY HH:MM:SS in the business timezone."""
    return to_business_tz(dt, tz).strftime(DATETIME_FORMAT)
