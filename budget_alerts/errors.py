# errors.py
"""Exception hierarchy shared by the engine and the API layer."""


class BudgetEngineError(Exception):
    """Base class for every error raised by the budget engine."""


class InputError(BudgetEngineError):
    """Malformed budget input, e.g. a non-positive limit or a missing category."""


class StoreError(BudgetEngineError):
    """A collaborator (expenses, budgets, trackers, income) could not be read or written."""


class NotificationError(BudgetEngineError):
    """Emitting a threshold notification failed.

    Raised by notification sinks. The threshold path logs it and carries on.
    """


class DuplicateBudgetError(StoreError):
    """A budget with the same scope, category and period already exists."""
