# services/usage.py
"""Per-category budget usage snapshots.

A snapshot is always rebuilt from the full expense list of the scope; nothing
here keeps running totals, so repeated or concurrent calls with the same
input return the same result.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel

from .domain import ExpenseRecord
from .periods import BudgetPeriod, is_in_period
from .status import BudgetStatus, classify
from .trend import ZERO, Trend, calculate_trend, total_amount


class BudgetUsageSnapshot(BaseModel):
    category: str
    budget_limit: Decimal
    total_spent: Decimal
    remaining_amount: Decimal
    percentage_used: float
    status: BudgetStatus
    expense_count: int
    trend: Trend
    budget_id: Optional[str] = None


class UsageSummary(BaseModel):
    total_budget: Decimal
    total_spent: Decimal
    percentage_used: float
    status: BudgetStatus
    categories_count: int
    categories_over_budget: int
    categories_at_risk: int


def usage_percentage(total_spent: Decimal, budget_limit: Decimal) -> Decimal:
    """``total_spent`` as a percentage of ``budget_limit``; 0 for a zero limit."""
    if budget_limit <= 0:
        return ZERO
    return Decimal(total_spent) / Decimal(budget_limit) * 100


def filter_expenses(
    expenses: Iterable[ExpenseRecord], category: str, period: BudgetPeriod
) -> List[ExpenseRecord]:
    return [
        expense
        for expense in expenses
        if expense.category == category and is_in_period(expense.date, period)
    ]


def calculate_usage(
    category: str,
    budget_limit: Decimal,
    expenses: Iterable[ExpenseRecord],
    period: BudgetPeriod,
    previous_expenses: Optional[Iterable[ExpenseRecord]] = None,
    today: Optional[date] = None,
    budget_id: Optional[str] = None,
) -> BudgetUsageSnapshot:
    """Usage of one category budget for ``period``.

    Args:
        category: Budget category; only expenses with this exact category count.
        budget_limit: Monthly limit. Not validated here.
        expenses: Every expense of the owner or group, any period.
        period: Period to report on.
        previous_expenses: Expenses used for the month-over-month comparison;
            filtered to the same category and to the period before ``period``.
        today: Pins the clock used for the run-rate projection.
        budget_id: Carried through to the snapshot for callers that need it.
    """
    budget_limit = Decimal(budget_limit)
    relevant = filter_expenses(expenses, category, period)
    previous = filter_expenses(previous_expenses or [], category, period.previous())

    total_spent = total_amount(relevant)
    percentage = float(usage_percentage(total_spent, budget_limit))

    return BudgetUsageSnapshot(
        category=category,
        budget_limit=budget_limit,
        total_spent=total_spent,
        remaining_amount=budget_limit - total_spent,
        percentage_used=percentage,
        status=classify(percentage),
        expense_count=len(relevant),
        trend=calculate_trend(relevant, previous, period, budget_limit, today),
        budget_id=budget_id,
    )


def summarize_usage(snapshots: Sequence[BudgetUsageSnapshot]) -> UsageSummary:
    """Roll several category snapshots up into one overall figure."""
    total_budget = sum((s.budget_limit for s in snapshots), ZERO)
    total_spent = sum((s.total_spent for s in snapshots), ZERO)
    percentage = float(usage_percentage(total_spent, total_budget))
    return UsageSummary(
        total_budget=total_budget,
        total_spent=total_spent,
        percentage_used=percentage,
        status=classify(percentage),
        categories_count=len(snapshots),
        categories_over_budget=sum(1 for s in snapshots if s.status == BudgetStatus.OVER),
        categories_at_risk=sum(
            1
            for s in snapshots
            if s.status in (BudgetStatus.WARNING, BudgetStatus.CRITICAL)
        ),
    )


def sort_by_status(snapshots: Iterable[BudgetUsageSnapshot]) -> List[BudgetUsageSnapshot]:
    """Most urgent first: over, critical, warning, safe."""
    return sorted(snapshots, key=lambda s: -s.status.severity)
