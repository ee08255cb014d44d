# services/domain.py
"""Value types the engine reads from its collaborators."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..errors import InputError
from .periods import BudgetPeriod, to_local_time


class BudgetScope(BaseModel, frozen=True):
    """Who a budget, expense or income source belongs to."""

    kind: Literal["personal", "group"]
    id: str

    @classmethod
    def personal(cls, owner_id: str) -> "BudgetScope":
        return cls(kind="personal", id=owner_id)

    @classmethod
    def group(cls, group_id: str) -> "BudgetScope":
        return cls(kind="group", id=group_id)

    @property
    def is_group(self) -> bool:
        return self.kind == "group"


class ExpenseRecord(BaseModel, frozen=True):
    category: str
    amount: Decimal = Field(ge=0)
    date: datetime
    id: Optional[int] = None
    description: Optional[str] = None

    @field_validator("date")
    @classmethod
    def date_as_local_time(cls, v: datetime) -> datetime:
        return to_local_time(v)


class Budget(BaseModel, frozen=True):
    id: str
    category: str
    monthly_limit: Decimal
    period: BudgetPeriod
    scope: BudgetScope
    created_by: Optional[str] = None

    @classmethod
    def new(
        cls,
        scope: BudgetScope,
        category: str,
        monthly_limit: Decimal,
        period: BudgetPeriod,
        created_by: Optional[str] = None,
    ) -> "Budget":
        """Build a budget, rejecting a blank category or a non-positive limit."""
        category = (category or "").strip()
        if not category:
            raise InputError("Budget category is required")
        if monthly_limit is None or Decimal(monthly_limit) <= 0:
            raise InputError(f"Budget limit must be positive, got {monthly_limit}")
        return cls(
            id=budget_id_for(scope, category, period),
            category=category,
            monthly_limit=Decimal(monthly_limit),
            period=period,
            scope=scope,
            created_by=created_by,
        )

    def with_limit(self, monthly_limit: Decimal) -> "Budget":
        if monthly_limit is None or Decimal(monthly_limit) <= 0:
            raise InputError(f"Budget limit must be positive, got {monthly_limit}")
        return self.model_copy(update={"monthly_limit": Decimal(monthly_limit)})


def budget_id_for(scope: BudgetScope, category: str, period: BudgetPeriod) -> str:
    """Deterministic id, so (scope, category, period) can only hold one budget."""
    return f"{scope.id}_{category}_{period.year}_{period.month}"


class IncomeFrequency(str, Enum):
    MONTHLY = "monthly"
    BIWEEKLY = "biweekly"
    WEEKLY = "weekly"
    YEARLY = "yearly"
    ONCE = "once"


class IncomeSource(BaseModel):
    amount: Decimal = Field(ge=0)
    frequency: IncomeFrequency = IncomeFrequency.MONTHLY
    name: str = ""
    is_active: bool = True
    id: Optional[int] = None


class GoalStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SavingsGoal(BaseModel):
    monthly_contribution: Decimal = Field(ge=0)
    name: str = ""
    target_amount: Optional[Decimal] = None
    is_active: bool = True
    status: GoalStatus = GoalStatus.ACTIVE
    id: Optional[int] = None
