"""Business day arithmetic (Monday to Friday, no holiday calendar)."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from order_automation.core.timezone import BUSINESS_TZ, to_business_tz

# datetime.weekday(): Monday=0 ... Friday=4, Saturday=5, Sunday=6
LAST_WEEKDAY = 4


def calculate_business_days(
    start: datetime,
    end: datetime,
    tz: ZoneInfo = BUSINESS_TZ,
) -> int:
    """
    Count whole business days elapsed between two instants.

    Counts the calendar dates (in the business timezone) strictly after
    ``start``'s date up to and including ``end``'s date that fall on
    Monday-Friday. ``start``'s own date never counts, so Friday -> Monday
    is 1 and any instant compared with itself is 0.

    Args:
        start: Instant the waiting period began (e.g. latest note timestamp)
        end: Instant to measure up to (usually now)
        tz: Business calendar timezone

    Returns:
        Number of business days elapsed, never negative
    """
    start_local = to_business_tz(start, tz)
    end_local = to_business_tz(end, tz)

    if end_local <= start_local:
        return 0

    start_date = start_local.date()
    end_date = end_local.date()

    total_days = (end_date - start_date).days
    if total_days <= 0:
        return 0

    # Full weeks contribute five business days each
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 5

    current = start_date + timedelta(days=full_weeks * 7)
    for _ in range(remainder):
        current += timedelta(days=1)
        if current.weekday() <= LAST_WEEKDAY:
            count += 1

    return count
