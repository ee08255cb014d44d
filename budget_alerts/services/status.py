# services/status.py
"""Display status of a budget derived from its usage percentage.

These bins drive what the user sees next to a budget. The alert trip-points
used for notifications (75/90/100) live in ``thresholds`` and are kept
separate on purpose: the warning alert fires a few points after the warning
badge appears.
"""

from decimal import Decimal
from enum import Enum
from typing import Union

Percentage = Union[int, float, Decimal]

OVER_ABOVE = 100
CRITICAL_FROM = 91
WARNING_FROM = 71


class BudgetStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"
    OVER = "over"

    @property
    def severity(self) -> int:
        """Position in the order safe < warning < critical < over."""
        return _SEVERITY[self]


_SEVERITY = {
    BudgetStatus.SAFE: 0,
    BudgetStatus.WARNING: 1,
    BudgetStatus.CRITICAL: 2,
    BudgetStatus.OVER: 3,
}


def classify(percentage_used: Percentage) -> BudgetStatus:
    """Map a usage percentage to exactly one status, checked high to low."""
    if percentage_used > OVER_ABOVE:
        return BudgetStatus.OVER
    if percentage_used >= CRITICAL_FROM:
        return BudgetStatus.CRITICAL
    if percentage_used >= WARNING_FROM:
        return BudgetStatus.WARNING
    return BudgetStatus.SAFE
