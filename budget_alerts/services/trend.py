# services/trend.py
"""Month-over-month comparison and linear run-rate projection.

The projection extrapolates the average daily spend observed so far over the
remaining days of the period. It does not model seasonality or weekday
patterns.
"""

import math
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from .domain import ExpenseRecord
from .periods import BudgetPeriod, days_in_period, elapsed_days

ZERO = Decimal("0")


class Trend(BaseModel):
    compared_to_previous_month: float = 0.0
    average_spending_rate: Decimal = ZERO
    projected_end_of_period_total: Decimal = ZERO
    # None means "not on course to overspend", which is not the same as 0 days left
    days_until_over_budget: Optional[int] = None


def total_amount(expenses: Iterable[ExpenseRecord]) -> Decimal:
    return sum((expense.amount for expense in expenses), ZERO)


def calculate_trend(
    current_expenses: Iterable[ExpenseRecord],
    previous_expenses: Iterable[ExpenseRecord],
    period: BudgetPeriod,
    budget_limit: Decimal,
    today: Optional[date] = None,
) -> Trend:
    """Trend for already-filtered current and previous period expenses."""
    current_total = total_amount(current_expenses)
    previous_total = total_amount(previous_expenses)

    compared = 0.0
    if previous_total > 0:
        compared = float((current_total - previous_total) / previous_total * 100)

    period_days = days_in_period(period)
    days_passed = elapsed_days(period, today)
    rate = current_total / days_passed if days_passed > 0 else ZERO

    days_remaining = period_days - days_passed
    projected = current_total + rate * days_remaining

    days_until_over = None
    if projected > budget_limit and rate > 0:
        days_until_over = math.ceil((budget_limit - current_total) / rate)

    return Trend(
        compared_to_previous_month=compared,
        average_spending_rate=rate,
        projected_end_of_period_total=projected,
        days_until_over_budget=days_until_over,
    )
