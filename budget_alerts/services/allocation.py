# services/allocation.py
"""Income allocation: do budgets plus savings commitments fit in income?

Over-allocation is advisory. The validator reports it and callers decide
whether to go ahead; nothing here refuses a change.
"""

import logging
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel

from .contracts import BudgetStore, FinanceSource
from .domain import BudgetScope, GoalStatus, IncomeFrequency, IncomeSource, SavingsGoal
from .periods import BudgetPeriod
from .trend import ZERO

logger = logging.getLogger(__name__)

PAYMENTS_PER_YEAR = {
    IncomeFrequency.MONTHLY: 12,
    IncomeFrequency.BIWEEKLY: 26,
    IncomeFrequency.WEEKLY: 52,
    IncomeFrequency.YEARLY: 1,
    IncomeFrequency.ONCE: 0,
}


def monthly_equivalent(amount: Decimal, frequency: IncomeFrequency) -> Decimal:
    """Convert an income amount paid at ``frequency`` to a per-month amount."""
    return Decimal(amount) * PAYMENTS_PER_YEAR[IncomeFrequency(frequency)] / 12


def total_monthly_income(sources: Iterable[IncomeSource]) -> Decimal:
    return sum(
        (monthly_equivalent(s.amount, s.frequency) for s in sources if s.is_active),
        ZERO,
    )


def total_monthly_savings(goals: Iterable[SavingsGoal]) -> Decimal:
    return sum(
        (
            g.monthly_contribution
            for g in goals
            if g.is_active and g.status == GoalStatus.ACTIVE
        ),
        ZERO,
    )


def _share(part: Decimal, whole: Decimal) -> float:
    return float(part / whole * 100) if whole > 0 else 0.0


class AllocationCheck(BaseModel):
    is_valid: bool
    total_allocated: Decimal
    unallocated: Decimal
    over_allocation: Decimal
    new_total_budgets: Decimal
    new_total_savings: Decimal


class AllocationState(BaseModel):
    total_monthly_income: Decimal
    total_budgets: Decimal
    total_savings: Decimal
    total_allocated: Decimal
    unallocated: Decimal
    is_over_allocated: bool
    allocation_percentage: float
    budget_percentage: float
    savings_percentage: float

    @classmethod
    def from_totals(
        cls, income: Decimal, budgets: Decimal, savings: Decimal
    ) -> "AllocationState":
        allocated = budgets + savings
        unallocated = income - allocated
        return cls(
            total_monthly_income=income,
            total_budgets=budgets,
            total_savings=savings,
            total_allocated=allocated,
            unallocated=unallocated,
            is_over_allocated=unallocated < 0,
            allocation_percentage=_share(allocated, income),
            budget_percentage=_share(budgets, income),
            savings_percentage=_share(savings, income),
        )

    def validate(
        self, budget_delta: Decimal = ZERO, savings_delta: Decimal = ZERO
    ) -> AllocationCheck:
        """Allocation as if the deltas were applied. Does not change this state."""
        new_budgets = self.total_budgets + Decimal(budget_delta)
        new_savings = self.total_savings + Decimal(savings_delta)
        allocated = new_budgets + new_savings
        unallocated = self.total_monthly_income - allocated
        return AllocationCheck(
            is_valid=unallocated >= 0,
            total_allocated=allocated,
            unallocated=unallocated,
            over_allocation=max(ZERO, allocated - self.total_monthly_income),
            new_total_budgets=new_budgets,
            new_total_savings=new_savings,
        )


async def load_allocation(
    scope: BudgetScope,
    period: BudgetPeriod,
    budgets: BudgetStore,
    finances: FinanceSource,
) -> AllocationState:
    """Read income, budgets and savings for ``scope`` and total them up.

    Store errors propagate; the caller needs to know the figures are missing.
    """
    sources = await finances.list_active_income_sources(scope)
    goals = await finances.list_active_savings_goals(scope)
    period_budgets = await budgets.list_budgets(scope, period)

    state = AllocationState.from_totals(
        income=total_monthly_income(sources),
        budgets=sum((b.monthly_limit for b in period_budgets), ZERO),
        savings=total_monthly_savings(goals),
    )
    logger.debug(
        f"Allocation for {scope.kind}:{scope.id} {period}: "
        f"income={state.total_monthly_income} allocated={state.total_allocated}"
    )
    return state
