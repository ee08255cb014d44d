"""Budget usage, allocation and threshold alerting engine."""

from .allocation import AllocationCheck, AllocationState, load_allocation, monthly_equivalent
from .contracts import (
    BudgetStore,
    ExpenseSource,
    FinanceSource,
    GroupDirectory,
    NotificationSink,
    Stores,
    TrackerStore,
)
from .domain import Budget, BudgetScope, ExpenseRecord, IncomeFrequency, IncomeSource, SavingsGoal
from .impact import BudgetImpact, preview_impact
from .monitoring import check_budget_after_expense
from .notifier import ThresholdCheck, ThresholdNotifier, sweep_stale_trackers
from .periods import BudgetPeriod, current_period, is_in_period
from .status import BudgetStatus, classify
from .thresholds import ThresholdLevel, ThresholdTracker
from .trend import Trend, calculate_trend
from .usage import BudgetUsageSnapshot, calculate_usage, sort_by_status, summarize_usage

__all__ = [
    "AllocationCheck",
    "AllocationState",
    "Budget",
    "BudgetImpact",
    "BudgetPeriod",
    "BudgetScope",
    "BudgetStatus",
    "BudgetStore",
    "BudgetUsageSnapshot",
    "ExpenseRecord",
    "ExpenseSource",
    "FinanceSource",
    "GroupDirectory",
    "IncomeFrequency",
    "IncomeSource",
    "NotificationSink",
    "SavingsGoal",
    "Stores",
    "ThresholdCheck",
    "ThresholdLevel",
    "ThresholdNotifier",
    "ThresholdTracker",
    "TrackerStore",
    "Trend",
    "calculate_trend",
    "calculate_usage",
    "check_budget_after_expense",
    "classify",
    "current_period",
    "is_in_period",
    "load_allocation",
    "monthly_equivalent",
    "preview_impact",
    "sort_by_status",
    "summarize_usage",
    "sweep_stale_trackers",
]
