# stores/sql.py
"""SQLAlchemy implementations of the engine's collaborators.

All stores of one request share the request's AsyncSession. Any
SQLAlchemyError leaves this module as a StoreError (or a NotificationError
for the notification sink).
"""

import functools
import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
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
from ..services.thresholds import (
    ThresholdLevel,
    ThresholdState,
    ThresholdTracker,
    tracker_id,
)

logger = logging.getLogger(__name__)


def store_errors(method):
    """Roll back and re-raise database failures as StoreError."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"{type(self).__name__}.{method.__name__} failed: {exc}")
            raise StoreError(f"{method.__name__} failed") from exc

    return wrapper


def _scope_filter(model, scope: BudgetScope):
    return (model.scope_type == scope.kind, model.scope_id == scope.id)


def _to_budget(row: models.Budget) -> Budget:
    return Budget(
        id=row.id,
        category=row.category,
        monthly_limit=row.monthly_limit,
        period=BudgetPeriod(month=row.month, year=row.year),
        scope=BudgetScope(kind=row.scope_type, id=row.scope_id),
        created_by=row.created_by,
    )


def _to_expense(row: models.Expense) -> ExpenseRecord:
    return ExpenseRecord(
        id=row.id,
        category=row.category,
        amount=row.amount,
        date=row.date,
        description=row.description,
    )


def _to_income(row: models.IncomeSource) -> IncomeSource:
    return IncomeSource(
        id=row.id,
        name=row.name,
        amount=row.amount,
        frequency=row.frequency,
        is_active=row.is_active,
    )


def _to_goal(row: models.SavingsGoal) -> SavingsGoal:
    return SavingsGoal(
        id=row.id,
        name=row.name,
        target_amount=row.target_amount,
        monthly_contribution=row.monthly_contribution,
        is_active=row.is_active,
        status=row.status,
    )


def _to_tracker(row: models.ThresholdTracker) -> ThresholdTracker:
    thresholds = {
        level: ThresholdState(
            triggered=getattr(row, f"{level.value}_triggered"),
            triggered_at=getattr(row, f"{level.value}_triggered_at"),
        )
        for level in ThresholdLevel
    }
    return ThresholdTracker(
        id=row.id,
        budget_id=row.budget_id,
        owner_id=row.owner_id,
        category=row.category,
        period=BudgetPeriod(month=row.month, year=row.year),
        thresholds=thresholds,
        last_checked=row.last_checked,
    )


class SqlExpenseSource(ExpenseSource):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_errors
    async def list_expenses(self, scope: BudgetScope) -> List[ExpenseRecord]:
        result = await self.session.execute(
            select(models.Expense).where(*_scope_filter(models.Expense, scope))
        )
        return [_to_expense(row) for row in result.scalars()]

    @store_errors
    async def add_expense(
        self, scope: BudgetScope, expense: ExpenseRecord, created_by: str
    ) -> ExpenseRecord:
        row = models.Expense(
            scope_type=scope.kind,
            scope_id=scope.id,
            category=expense.category,
            amount=expense.amount,
            description=expense.description,
            date=expense.date,
            created_by=created_by,
        )
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return _to_expense(row)


class SqlBudgetStore(BudgetStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_errors
    async def get_budget(
        self, scope: BudgetScope, category: str, period: BudgetPeriod
    ) -> Optional[Budget]:
        return await self.get_budget_by_id(budget_id_for(scope, category, period))

    @store_errors
    async def get_budget_by_id(self, budget_id: str) -> Optional[Budget]:
        row = await self.session.get(models.Budget, budget_id)
        return _to_budget(row) if row else None

    @store_errors
    async def list_budgets(self, scope: BudgetScope, period: BudgetPeriod) -> List[Budget]:
        result = await self.session.execute(
            select(models.Budget)
            .where(
                *_scope_filter(models.Budget, scope),
                models.Budget.year == period.year,
                models.Budget.month == period.month,
            )
            .order_by(models.Budget.category)
        )
        return [_to_budget(row) for row in result.scalars()]

    @store_errors
    async def create_budget(self, budget: Budget) -> Budget:
        row = models.Budget(
            id=budget.id,
            scope_type=budget.scope.kind,
            scope_id=budget.scope.id,
            category=budget.category,
            monthly_limit=budget.monthly_limit,
            year=budget.period.year,
            month=budget.period.month,
            created_by=budget.created_by,
        )
        self.session.add(row)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateBudgetError(f"Budget {budget.id} already exists") from exc
        return budget

    @store_errors
    async def update_budget(self, budget_id: str, monthly_limit: Decimal) -> Optional[Budget]:
        row = await self.session.get(models.Budget, budget_id)
        if row is None:
            return None
        row.monthly_limit = monthly_limit
        await self.session.commit()
        return _to_budget(row)

    @store_errors
    async def delete_budget(self, budget_id: str) -> bool:
        row = await self.session.get(models.Budget, budget_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.commit()
        return True


class SqlFinanceSource(FinanceSource):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_errors
    async def list_active_income_sources(self, scope: BudgetScope) -> List[IncomeSource]:
        result = await self.session.execute(
            select(models.IncomeSource).where(
                *_scope_filter(models.IncomeSource, scope),
                models.IncomeSource.is_active.is_(True),
            )
        )
        return [_to_income(row) for row in result.scalars()]

    @store_errors
    async def list_active_savings_goals(self, scope: BudgetScope) -> List[SavingsGoal]:
        result = await self.session.execute(
            select(models.SavingsGoal).where(
                *_scope_filter(models.SavingsGoal, scope),
                models.SavingsGoal.is_active.is_(True),
                models.SavingsGoal.status == GoalStatus.ACTIVE.value,
            )
        )
        return [_to_goal(row) for row in result.scalars()]

    @store_errors
    async def add_income_source(self, scope: BudgetScope, source: IncomeSource) -> IncomeSource:
        row = models.IncomeSource(
            scope_type=scope.kind,
            scope_id=scope.id,
            name=source.name,
            amount=source.amount,
            frequency=source.frequency.value,
            is_active=source.is_active,
        )
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return _to_income(row)

    @store_errors
    async def add_savings_goal(self, scope: BudgetScope, goal: SavingsGoal) -> SavingsGoal:
        row = models.SavingsGoal(
            scope_type=scope.kind,
            scope_id=scope.id,
            name=goal.name,
            target_amount=goal.target_amount,
            monthly_contribution=goal.monthly_contribution,
            is_active=goal.is_active,
            status=goal.status.value,
        )
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return _to_goal(row)


class SqlTrackerStore(TrackerStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_errors
    async def get_or_create_tracker(
        self,
        budget_id: str,
        owner_id: str,
        category: str,
        period: BudgetPeriod,
        now: datetime,
    ) -> ThresholdTracker:
        key = tracker_id(budget_id, period)
        row = await self.session.get(models.ThresholdTracker, key)
        if row is None:
            row = models.ThresholdTracker(
                id=key,
                budget_id=budget_id,
                owner_id=owner_id,
                category=category,
                year=period.year,
                month=period.month,
                warning_triggered=False,
                critical_triggered=False,
                exceeded_triggered=False,
                last_checked=now,
            )
            self.session.add(row)
            try:
                await self.session.commit()
            except IntegrityError:
                # created concurrently by another request
                await self.session.rollback()
                row = await self.session.get(models.ThresholdTracker, key)
        return _to_tracker(row)

    @store_errors
    async def update_tracker(
        self, tracker_id: str, levels: Iterable[ThresholdLevel], now: datetime
    ) -> List[ThresholdLevel]:
        table = models.ThresholdTracker
        wanted = set(levels)
        claimed = []
        for level in ThresholdLevel:
            if level not in wanted:
                continue
            flag = getattr(table, f"{level.value}_triggered")
            result = await self.session.execute(
                update(table)
                .where(table.id == tracker_id, flag.is_(False))
                .values({
                    f"{level.value}_triggered": True,
                    f"{level.value}_triggered_at": now,
                    "last_checked": now,
                })
            )
            if result.rowcount == 1:
                claimed.append(level)
        await self.session.execute(
            update(table).where(table.id == tracker_id).values(last_checked=now)
        )
        await self.session.commit()
        return claimed

    @store_errors
    async def delete_trackers_older_than(self, year: int) -> int:
        result = await self.session.execute(
            delete(models.ThresholdTracker).where(models.ThresholdTracker.year < year)
        )
        await self.session.commit()
        return result.rowcount


class SqlNotificationSink(NotificationSink):
    """Writes in-app notification rows for the delivery workers to pick up."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def emit(self, recipient_id: str, intent: NotificationIntent) -> None:
        row = models.Notification(
            user_id=recipient_id,
            type=intent.type,
            budget_id=intent.budget_id,
            category=intent.category,
            percentage=intent.percentage,
            current=intent.current,
            limit_amount=intent.limit,
            overage=getattr(intent, "overage", None),
            group_id=intent.group_id,
            group_name=intent.group_name,
        )
        try:
            self.session.add(row)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise NotificationError(f"Could not store {intent.type} notification") from exc


class SqlGroupDirectory(GroupDirectory):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_errors
    async def get_group(self, group_id: str) -> Optional[GroupContext]:
        group = await self.session.get(models.Group, group_id)
        if group is None:
            return None
        result = await self.session.execute(
            select(models.GroupMember.user_id).where(models.GroupMember.group_id == group_id)
        )
        return GroupContext(
            group_id=group.id, group_name=group.name, member_ids=list(result.scalars())
        )

    @store_errors
    async def is_member(self, group_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            select(models.GroupMember.id).where(
                models.GroupMember.group_id == group_id,
                models.GroupMember.user_id == user_id,
            )
        )
        return result.first() is not None


def sql_stores(session: AsyncSession) -> Stores:
    return Stores(
        expenses=SqlExpenseSource(session),
        budgets=SqlBudgetStore(session),
        finances=SqlFinanceSource(session),
        trackers=SqlTrackerStore(session),
        notifications=SqlNotificationSink(session),
        groups=SqlGroupDirectory(session),
    )
