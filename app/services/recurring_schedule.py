"""Date arithmetic for recurring invoices.

All helpers are pure: "now" is always passed in by the caller so the
rollover rules can be tested without touching the system clock.

Rules:
- A period is 1 month (monthly), 3 months (quarterly) or 12 months (yearly).
- The preferred billing day is clamped to the last day of shorter months
  (31 -> 30 in April, 31/30/29 -> 28 in a non-leap February).
- Time of day is carried through unchanged.
"""
from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from app.models.recurring_invoice import RecurringFrequency


PERIOD_MONTHS = {
    RecurringFrequency.MONTHLY.value: 1,
    RecurringFrequency.QUARTERLY.value: 3,
    RecurringFrequency.YEARLY.value: 12,
}

DateLike = Union[date, datetime]


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    return monthrange(year, month)[1]


def clamp_day(value: DateLike, day_of_month: int) -> DateLike:
    """Move ``value`` to ``day_of_month`` within its own month, clamped to the month length."""
    return value.replace(day=min(day_of_month, days_in_month(value.year, value.month)))


def period_months(frequency: str) -> int:
    """Length of a billing period in months."""
    key = frequency.value if isinstance(frequency, RecurringFrequency) else frequency
    try:
        return PERIOD_MONTHS[key]
    except KeyError:
        raise ValueError(f"Unsupported frequency: {frequency!r}")


def add_period(value: DateLike, frequency: str) -> DateLike:
    """Advance ``value`` by one billing period (day is clamped by relativedelta)."""
    return value + relativedelta(months=period_months(frequency))


def next_from_last_run(
    last_date: Optional[datetime],
    frequency: str,
    day_of_month: int,
    now: Optional[datetime] = None,
) -> datetime:
    """
    Next generation date after a previous run.

    Args:
        last_date: Last generation timestamp. When None, ``now`` is used as
            the computation anchor.
        frequency: monthly, quarterly or yearly
        day_of_month: Preferred billing day (1-31)
        now: Current time; defaults to the current UTC time

    Returns:
        anchor + one period, moved to the (clamped) billing day
    """
    anchor = last_date or now or datetime.now(timezone.utc)
    return clamp_day(add_period(anchor, frequency), day_of_month)


def next_from_start(
    start_date: datetime,
    frequency: str,
    day_of_month: int,
) -> datetime:
    """
    First generation date for a template starting at ``start_date``.

    If the start day is before ``day_of_month``, the first invoice is due in
    the start month (clamped to its length). Otherwise the first invoice is
    pushed one full period forward.
    """
    if start_date.day < day_of_month:
        return clamp_day(start_date, day_of_month)
    return clamp_day(add_period(start_date, frequency), day_of_month)


def billing_date_for(now: datetime, day_of_month: int) -> date:
    """
    Invoice date for a generation running at ``now``.

    The billing day is placed in the current month; if it is still in the
    future it is rolled back one month, so an invoice is never dated after
    the day it was generated.
    """
    today = now.date()
    candidate = clamp_day(today, day_of_month)
    if candidate > today:
        candidate = clamp_day(today - relativedelta(months=1), day_of_month)
    return candidate
