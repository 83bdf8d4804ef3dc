"""Calendar helpers for month-based windows and accounting periods."""
from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime

from dateutil.relativedelta import relativedelta


def months_between(later: datetime | date, earlier: datetime | date) -> int:
    """Whole calendar months elapsed from *earlier* to *later*.

    Partial months do not count, so a lock taken on 15 March is 11 months
    old until 15 March of the following year.
    """
    delta = relativedelta(later, earlier)
    return delta.years * 12 + delta.months


def add_months(moment, months: int):
    return moment + relativedelta(months=months)


def month_bounds(day: date) -> tuple[date, date]:
    """First and last day of the month containing *day*."""
    last = monthrange(day.year, day.month)[1]
    return date(day.year, day.month, 1), date(day.year, day.month, last)


def previous_month(day: date) -> date:
    """First day of the month before *day*'s month."""
    return date(day.year, day.month, 1) - relativedelta(months=1)


def parse_period(period: str) -> date:
    """Parse ``YYYY-MM`` into the first day of that month."""
    try:
        year, month = period.split("-")
        return date(int(year), int(month), 1)
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid period {period!r}: expected YYYY-MM.") from exc
