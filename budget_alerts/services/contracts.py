# services/contracts.py
"""Collaborators the engine talks to.

The engine never opens a database connection itself. Request handlers build
a :class:`Stores` bundle (SQL backed in production, in-memory in tests) and
pass the pieces in.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .domain import Budget, BudgetScope, ExpenseRecord, IncomeSource, SavingsGoal
from .notifications import GroupContext, NotificationIntent
from .periods import BudgetPeriod
from .thresholds import ThresholdLevel, ThresholdTracker


class ExpenseSource(ABC):
    @abstractmethod
    async def list_expenses(self, scope: BudgetScope) -> List[ExpenseRecord]:
        """Every expense recorded for ``scope``, any period."""

    @abstractmethod
    async def add_expense(
        self, scope: BudgetScope, expense: ExpenseRecord, created_by: str
    ) -> ExpenseRecord:
        """Persist ``expense`` and return it with its id filled in."""


class BudgetStore(ABC):
    @abstractmethod
    async def get_budget(
        self, scope: BudgetScope, category: str, period: BudgetPeriod
    ) -> Optional[Budget]:
        ...

    @abstractmethod
    async def get_budget_by_id(self, budget_id: str) -> Optional[Budget]:
        ...

    @abstractmethod
    async def list_budgets(self, scope: BudgetScope, period: BudgetPeriod) -> List[Budget]:
        ...

    @abstractmethod
    async def create_budget(self, budget: Budget) -> Budget:
        """Insert ``budget``; raises DuplicateBudgetError if its id is already taken."""

    @abstractmethod
    async def update_budget(self, budget_id: str, monthly_limit: Decimal) -> Optional[Budget]:
        """Set a new monthly limit. Returns None when the budget does not exist."""

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        """Remove the budget; False when there was nothing to remove."""


class FinanceSource(ABC):
    @abstractmethod
    async def list_active_income_sources(self, scope: BudgetScope) -> List[IncomeSource]:
        ...

    @abstractmethod
    async def list_active_savings_goals(self, scope: BudgetScope) -> List[SavingsGoal]:
        ...

    @abstractmethod
    async def add_income_source(self, scope: BudgetScope, source: IncomeSource) -> IncomeSource:
        ...

    @abstractmethod
    async def add_savings_goal(self, scope: BudgetScope, goal: SavingsGoal) -> SavingsGoal:
        ...


class TrackerStore(ABC):
    @abstractmethod
    async def get_or_create_tracker(
        self,
        budget_id: str,
        owner_id: str,
        category: str,
        period: BudgetPeriod,
        now: datetime,
    ) -> ThresholdTracker:
        """Load the tracker of (budget_id, period), creating it untriggered if absent."""

    @abstractmethod
    async def update_tracker(
        self, tracker_id: str, levels: Iterable[ThresholdLevel], now: datetime
    ) -> List[ThresholdLevel]:
        """Mark ``levels`` triggered, but only those not already triggered.

        This is a conditional write: a level already set by a concurrent
        caller is left alone and left out of the result. Returns the levels
        this call set, in threshold order.
        """

    @abstractmethod
    async def delete_trackers_older_than(self, year: int) -> int:
        """Delete trackers whose period year is strictly before ``year``."""


class NotificationSink(ABC):
    @abstractmethod
    async def emit(self, recipient_id: str, intent: NotificationIntent) -> None:
        """Hand one intent over for delivery. May raise NotificationError."""


class GroupDirectory(ABC):
    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[GroupContext]:
        ...

    @abstractmethod
    async def is_member(self, group_id: str, user_id: str) -> bool:
        ...


@dataclass
class Stores:
    expenses: ExpenseSource
    budgets: BudgetStore
    finances: FinanceSource
    trackers: TrackerStore
    notifications: NotificationSink
    groups: GroupDirectory
