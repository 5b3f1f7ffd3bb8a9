"""Calendar helpers: quarters, month arithmetic, day spans."""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

from tierwatch.core.exceptions import InvalidQuarterKeyError
from tierwatch.core.types import QuarterKey

_QUARTER_RE = re.compile(r"^(\d{4})-Q([1-4])$")


def quarter_key(day: date) -> QuarterKey:
    return f"{day.year}-Q{(day.month - 1) // 3 + 1}"


def quarter_bounds(key: QuarterKey) -> tuple[date, date]:
    """Return the first and last calendar day of a ``YYYY-Qn`` quarter."""
    match = _QUARTER_RE.match(key.strip())
    if not match:
        raise InvalidQuarterKeyError(key)
    year, quarter = int(match.group(1)), int(match.group(2))
    start_month = (quarter - 1) * 3 + 1
    end_month = start_month + 2
    last_day = calendar.monthrange(year, end_month)[1]
    return date(year, start_month, 1), date(year, end_month, last_day)


def add_months(day: date, months: int) -> date:
    """Add calendar months to a date, clamping the day to the target month."""
    year = day.year + (day.month - 1 + months) // 12
    month = (day.month - 1 + months) % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def days_between(start: date, end: date) -> int:
    return (end - start).days


def days_ago(reference: date, days: int) -> date:
    return reference - timedelta(days=days)
