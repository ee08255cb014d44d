# services/impact.py
"""What-if preview of a new expense against a budget, before it is saved."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from .status import BudgetStatus, classify
from .usage import BudgetUsageSnapshot, usage_percentage


class BudgetImpact(BaseModel):
    total_spent: Decimal
    percentage_used: float
    status: BudgetStatus
    previous_status: BudgetStatus
    will_exceed_budget: bool
    status_will_change: bool
    amount_over_budget: Optional[Decimal] = None


def preview_impact(current: BudgetUsageSnapshot, amount: Decimal) -> BudgetImpact:
    total_spent = current.total_spent + Decimal(amount)
    percentage = float(usage_percentage(total_spent, current.budget_limit))
    status = classify(percentage)
    will_exceed = percentage > 100
    return BudgetImpact(
        total_spent=total_spent,
        percentage_used=percentage,
        status=status,
        previous_status=current.status,
        will_exceed_budget=will_exceed,
        status_will_change=status != current.status,
        amount_over_budget=total_spent - current.budget_limit if will_exceed else None,
    )
