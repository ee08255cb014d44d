# services/periods.py
"""Calendar math for monthly budget periods."""

import calendar
from datetime import date, datetime, timezone
from typing import Optional, Tuple, Union

from pydantic import BaseModel, Field

Timestamp = Union[date, datetime]


class BudgetPeriod(BaseModel, frozen=True):
    """A (month, year) accounting window."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1)

    @classmethod
    def of(cls, timestamp: Timestamp) -> "BudgetPeriod":
        return cls(month=timestamp.month, year=timestamp.year)

    def previous(self) -> "BudgetPeriod":
        if self.month == 1:
            return BudgetPeriod(month=12, year=self.year - 1)
        return BudgetPeriod(month=self.month - 1, year=self.year)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def to_local_time(timestamp: datetime) -> datetime:
    """Naive local wall-clock time for ``timestamp``.

    Expense dates are stored and bucketed into periods in this form, so an
    offset sent by a client cannot move an expense into another month later.
    """
    if timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone().replace(tzinfo=None)


def utc_now() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def current_period(now: Optional[datetime] = None) -> BudgetPeriod:
    """Period containing ``now`` (local wall-clock time by default)."""
    return BudgetPeriod.of(now or datetime.now())


def is_in_period(timestamp: Timestamp, period: BudgetPeriod) -> bool:
    return timestamp.month == period.month and timestamp.year == period.year


def period_bounds(period: BudgetPeriod) -> Tuple[datetime, datetime]:
    """First and last instant of the period, both inclusive."""
    start = datetime(period.year, period.month, 1)
    end = datetime(
        period.year, period.month, days_in_period(period), 23, 59, 59, 999999
    )
    return start, end


def days_in_period(period: BudgetPeriod) -> int:
    return calendar.monthrange(period.year, period.month)[1]


def elapsed_days(period: BudgetPeriod, today: Optional[date] = None) -> int:
    """Current day of month, capped at the length of ``period``."""
    today = today or date.today()
    return min(today.day, days_in_period(period))
