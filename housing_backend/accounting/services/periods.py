# accounting/services/periods.py

"""
PERIOD KEYS

Accounting periods are calendar months identified by a "YYYY-MM" key.
A period key says which period a recognition or settlement logically
belongs to, independent of the entry's literal calendar date.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta

from accounting.services.exceptions import AccountingServiceError

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


class InvalidPeriodError(AccountingServiceError, ValueError):
    """Raised when a period key is malformed."""


def parse_period(period: str) -> tuple[int, int]:
    m = _PERIOD_RE.match(str(period or "").strip())
    if not m:
        raise InvalidPeriodError(f"Invalid period {period!r} (expected YYYY-MM)")

    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"Invalid period {period!r} (month out of range)")
    return year, month


def period_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def period_bounds(period: str) -> tuple[date, date]:
    """Inclusive first and last day of the period."""
    year, month = parse_period(period)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def days_in_period(period: str) -> int:
    start, end = period_bounds(period)
    return (end - start).days + 1


def next_period(period: str) -> str:
    _, end = period_bounds(period)
    return period_key(end + timedelta(days=1))


def previous_period(period: str) -> str:
    start, _ = period_bounds(period)
    return period_key(start - timedelta(days=1))


def iter_periods(first: str, last: str):
    """Yield period keys from first to last, inclusive."""
    parse_period(first)
    parse_period(last)
    current = first
    while current <= last:
        yield current
        current = next_period(current)


def overlap_days(period: str, start: date, end: date | None) -> int:
    """Number of days of [start, end] that fall inside the period (end=None: open-ended)."""
    p_start, p_end = period_bounds(period)
    lo = max(p_start, start)
    hi = p_end if end is None else min(p_end, end)
    if hi < lo:
        return 0
    return (hi - lo).days + 1
