"""
VoiceTasks — Due date calculator.

Pure date logic for new tasks: everything created through chat is due on
the next business day at a fixed local hour.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

# weekday() -> days to add; Mon-Thu roll to tomorrow, Fri/Sat/Sun to Monday
_DAYS_TO_NEXT_BUSINESS_DAY = {
    0: 1,  # Monday
    1: 1,
    2: 1,
    3: 1,  # Thursday
    4: 3,  # Friday
    5: 2,  # Saturday
    6: 1,  # Sunday
}


def next_business_day(today: date) -> date:
    """Return the next Monday-Friday date strictly after `today`."""
    return today + timedelta(days=_DAYS_TO_NEXT_BUSINESS_DAY[today.weekday()])


def task_due_datetime(
    now: datetime | None = None,
    hour: int = 9,
    timezone: str = "UTC",
) -> datetime:
    """Next business day at `hour`:00 in `timezone`.

    `now` may be naive (interpreted in `timezone`) or aware (converted).
    """
    tz = ZoneInfo(timezone)
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)

    due_day = next_business_day(now.date())
    return datetime.combine(due_day, time(hour=hour), tzinfo=tz)


def format_due(due: datetime) -> str:
    """Human-readable due date, e.g. 'Monday, 2026-10-19 at 09:00'."""
    return f"{due.strftime('%A')}, {due.date().isoformat()} at {due.strftime('%H:%M')}"
