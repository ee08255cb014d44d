# services/monitoring.py
"""Budget threshold monitoring hooked onto expense creation."""

import logging
from datetime import datetime
from typing import Callable, Optional

from .contracts import Stores
from .domain import BudgetScope
from .notifier import ThresholdCheck, ThresholdNotifier
from .periods import BudgetPeriod, utc_now
from .trend import total_amount
from .usage import filter_expenses

logger = logging.getLogger(__name__)


async def check_budget_after_expense(
    stores: Stores,
    scope: BudgetScope,
    category: str,
    period: BudgetPeriod,
    clock: Callable[[], datetime] = utc_now,
) -> Optional[ThresholdCheck]:
    """Re-evaluate the budget an expense landed in and fire any due alerts.

    Returns None when there is no budget for the category or when anything
    goes wrong; failures are logged, never raised, since the expense itself
    has already been saved.
    """
    try:
        budget = await stores.budgets.get_budget(scope, category, period)
        if budget is None:
            logger.debug(f"No {category} budget for {scope.kind}:{scope.id} in {period}")
            return None

        expenses = await stores.expenses.list_expenses(scope)
        total_spent = total_amount(filter_expenses(expenses, category, period))

        group = None
        if scope.is_group:
            group = await stores.groups.get_group(scope.id)

        notifier = ThresholdNotifier(stores.trackers, stores.notifications, clock)
        return await notifier.check_and_notify(
            budget_id=budget.id,
            owner_id=(budget.created_by or scope.id) if scope.is_group else scope.id,
            category=category,
            total_spent=total_spent,
            budget_limit=budget.monthly_limit,
            period=period,
            group=group,
        )
    except Exception:
        logger.exception(f"Budget monitoring failed for {category} ({period})")
        return None
