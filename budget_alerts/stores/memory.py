# stores/memory.py
"""Process-local stores, for tests and running the API without a database.

Every method completes without yielding to the event loop between its read
and its write, so within one process each call is atomic with respect to
other coroutines. That is what makes ``update_tracker`` a conditional write
here.
"""

import itertools
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..errors import DuplicateBudgetError, NotificationError, StoreError
from ..services.contracts import (
    BudgetStore,
    ExpenseSource,
    FinanceSource,
    GroupDirectory,
    NotificationSink,
    Stores,
    TrackerStore,
)
from ..services.domain import (
    Budget,
    BudgetScope,
    ExpenseRecord,
    GoalStatus,
    IncomeSource,
    SavingsGoal,
    budget_id_for,
)
from ..services.notifications import GroupContext, NotificationIntent
from ..services.periods import BudgetPeriod
from ..services.thresholds import ThresholdLevel, ThresholdState, ThresholdTracker, new_tracker, tracker_id


class InMemoryExpenseSource(ExpenseSource):
    def __init__(self):
        self._expenses: Dict[BudgetScope, List[ExpenseRecord]] = defaultdict(list)
        self._ids = itertools.count(1)

    async def list_expenses(self, scope: BudgetScope) -> List[ExpenseRecord]:
        return list(self._expenses[scope])

    async def add_expense(
        self, scope: BudgetScope, expense: ExpenseRecord, created_by: str
    ) -> ExpenseRecord:
        stored = expense.model_copy(update={"id": next(self._ids)})
        self._expenses[scope].append(stored)
        return stored


class InMemoryBudgetStore(BudgetStore):
    def __init__(self):
        self._budgets: Dict[str, Budget] = {}

    async def get_budget(
        self, scope: BudgetScope, category: str, period: BudgetPeriod
    ) -> Optional[Budget]:
        return self._budgets.get(budget_id_for(scope, category, period))

    async def get_budget_by_id(self, budget_id: str) -> Optional[Budget]:
        return self._budgets.get(budget_id)

    async def list_budgets(self, scope: BudgetScope, period: BudgetPeriod) -> List[Budget]:
        return [b for b in self._budgets.values() if b.scope == scope and b.period == period]

    async def create_budget(self, budget: Budget) -> Budget:
        if budget.id in self._budgets:
            raise DuplicateBudgetError(f"Budget {budget.id} already exists")
        self._budgets[budget.id] = budget
        return budget

    async def update_budget(self, budget_id: str, monthly_limit: Decimal) -> Optional[Budget]:
        budget = self._budgets.get(budget_id)
        if budget is None:
            return None
        self._budgets[budget_id] = budget.model_copy(update={"monthly_limit": Decimal(monthly_limit)})
        return self._budgets[budget_id]

    async def delete_budget(self, budget_id: str) -> bool:
        return self._budgets.pop(budget_id, None) is not None


class InMemoryFinanceSource(FinanceSource):
    def __init__(self):
        self._income: Dict[BudgetScope, List[IncomeSource]] = defaultdict(list)
        self._goals: Dict[BudgetScope, List[SavingsGoal]] = defaultdict(list)
        self._ids = itertools.count(1)

    async def list_active_income_sources(self, scope: BudgetScope) -> List[IncomeSource]:
        return [s for s in self._income[scope] if s.is_active]

    async def list_active_savings_goals(self, scope: BudgetScope) -> List[SavingsGoal]:
        return [
            g for g in self._goals[scope] if g.is_active and g.status == GoalStatus.ACTIVE
        ]

    async def add_income_source(self, scope: BudgetScope, source: IncomeSource) -> IncomeSource:
        stored = source.model_copy(update={"id": next(self._ids)})
        self._income[scope].append(stored)
        return stored

    async def add_savings_goal(self, scope: BudgetScope, goal: SavingsGoal) -> SavingsGoal:
        stored = goal.model_copy(update={"id": next(self._ids)})
        self._goals[scope].append(stored)
        return stored


class InMemoryTrackerStore(TrackerStore):
    def __init__(self):
        self.trackers: Dict[str, ThresholdTracker] = {}

    async def get_or_create_tracker(
        self,
        budget_id: str,
        owner_id: str,
        category: str,
        period: BudgetPeriod,
        now: datetime,
    ) -> ThresholdTracker:
        key = tracker_id(budget_id, period)
        if key not in self.trackers:
            self.trackers[key] = new_tracker(budget_id, owner_id, category, period, now)
        # hand out a copy so callers cannot flip flags behind the store's back
        return self.trackers[key].model_copy(deep=True)

    async def update_tracker(
        self, tracker_id: str, levels: Iterable[ThresholdLevel], now: datetime
    ) -> List[ThresholdLevel]:
        tracker = self.trackers.get(tracker_id)
        if tracker is None:
            raise StoreError(f"Threshold tracker {tracker_id} does not exist")
        wanted = set(levels)
        claimed = []
        for level in ThresholdLevel:
            if level in wanted and not tracker.is_triggered(level):
                tracker.thresholds[level] = ThresholdState(triggered=True, triggered_at=now)
                claimed.append(level)
        tracker.last_checked = now
        return claimed

    async def delete_trackers_older_than(self, year: int) -> int:
        stale = [key for key, t in self.trackers.items() if t.period.year < year]
        for key in stale:
            del self.trackers[key]
        return len(stale)


class InMemoryNotificationSink(NotificationSink):
    """Collects intents in ``sent``; recipients in ``failing`` raise instead."""

    def __init__(self):
        self.sent: List[Tuple[str, NotificationIntent]] = []
        self.failing: Set[str] = set()

    async def emit(self, recipient_id: str, intent: NotificationIntent) -> None:
        if recipient_id in self.failing:
            raise NotificationError(f"Delivery to {recipient_id} refused")
        self.sent.append((recipient_id, intent))


class InMemoryGroupDirectory(GroupDirectory):
    def __init__(self):
        self.groups: Dict[str, GroupContext] = {}

    def add_group(self, group_id: str, name: str, member_ids: Iterable[str]) -> GroupContext:
        group = GroupContext(group_id=group_id, group_name=name, member_ids=list(member_ids))
        self.groups[group_id] = group
        return group

    async def get_group(self, group_id: str) -> Optional[GroupContext]:
        return self.groups.get(group_id)

    async def is_member(self, group_id: str, user_id: str) -> bool:
        group = self.groups.get(group_id)
        return bool(group and user_id in group.member_ids)


def memory_stores() -> Stores:
    return Stores(
        expenses=InMemoryExpenseSource(),
        budgets=InMemoryBudgetStore(),
        finances=InMemoryFinanceSource(),
        trackers=InMemoryTrackerStore(),
        notifications=InMemoryNotificationSink(),
        groups=InMemoryGroupDirectory(),
    )
