from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..services.allocation import AllocationCheck
from ..services.domain import Budget, ExpenseRecord, IncomeFrequency, SavingsGoal
from ..services.periods import BudgetPeriod
from ..services.thresholds import ThresholdLevel
from ..services.usage import BudgetUsageSnapshot, UsageSummary


def _non_negative(v: Optional[Decimal], label: str) -> Optional[Decimal]:
    if v is not None and v < 0:
        raise ValueError(f'{label} must be non-negative')
    return v


class CategoryMixin(BaseModel):
    category: str

    @field_validator('category')
    @classmethod
    def category_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Category is required')
        return v


class BudgetCreate(CategoryMixin):
    monthly_limit: Decimal
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=1)

    @field_validator('monthly_limit')
    @classmethod
    def limit_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError('Monthly limit must be positive')
        return v


class BudgetCreated(BaseModel):
    """The new budget plus an advisory allocation check; never blocks creation."""
    budget: Budget
    allocation: AllocationCheck


class BudgetUpdate(BaseModel):
    monthly_limit: Decimal

    @field_validator('monthly_limit')
    @classmethod
    def limit_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError('Monthly limit must be positive')
        return v


class BudgetUpdated(BudgetCreated):
    """The changed budget; the check counts only the change in limit."""


class ExpenseCreate(CategoryMixin):
    amount: Decimal
    date: Optional[datetime] = None
    description: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        return _non_negative(v, 'Amount')


class ExpenseCreated(BaseModel):
    expense: ExpenseRecord
    fired_alerts: List[ThresholdLevel] = []


class ImpactRequest(CategoryMixin):
    amount: Decimal
    date: Optional[datetime] = None

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        return _non_negative(v, 'Amount')


class AllocationRequest(BaseModel):
    budget_delta: Decimal = Decimal(0)
    savings_delta: Decimal = Decimal(0)


class IncomeSourceCreate(BaseModel):
    name: str
    amount: Decimal
    frequency: IncomeFrequency = IncomeFrequency.MONTHLY
    is_active: bool = True

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        return _non_negative(v, 'Amount')


class SavingsGoalCreate(BaseModel):
    name: str
    monthly_contribution: Decimal
    target_amount: Optional[Decimal] = None

    @field_validator('monthly_contribution', 'target_amount')
    @classmethod
    def amounts_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _non_negative(v, 'Amount')


class SavingsGoalCreated(BaseModel):
    goal: SavingsGoal
    allocation: AllocationCheck


class UsageReport(BaseModel):
    period: BudgetPeriod
    usage: List[BudgetUsageSnapshot]
    summary: UsageSummary


class SweepResult(BaseModel):
    year: int
    deleted: int
