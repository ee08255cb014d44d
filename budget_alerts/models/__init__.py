from .budget import (
    Budget,
    Expense,
    Group,
    GroupMember,
    IncomeSource,
    Notification,
    SavingsGoal,
    ThresholdTracker,
)

__all__ = [
    "Budget",
    "Expense",
    "Group",
    "GroupMember",
    "IncomeSource",
    "Notification",
    "SavingsGoal",
    "ThresholdTracker",
]
