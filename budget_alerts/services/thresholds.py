# services/thresholds.py
"""Alert thresholds and the per-budget, per-period tracker that records them.

A tracker only ever moves a threshold from untriggered to triggered. The
whole tracker disappears when the stale-tracker sweep deletes it; there is
no other way back.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .periods import BudgetPeriod
from .usage import usage_percentage


class ThresholdLevel(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"

    @property
    def percentage(self) -> int:
        return ALERT_PERCENTAGES[self]


# Alert trip-points. Not the display status bins in ``status``.
ALERT_PERCENTAGES = {
    ThresholdLevel.WARNING: 75,
    ThresholdLevel.CRITICAL: 90,
    ThresholdLevel.EXCEEDED: 100,
}


class ThresholdState(BaseModel):
    triggered: bool = False
    triggered_at: Optional[datetime] = None


def _untriggered() -> Dict[ThresholdLevel, ThresholdState]:
    return {level: ThresholdState() for level in ThresholdLevel}


class ThresholdTracker(BaseModel):
    id: str
    budget_id: str
    owner_id: str
    category: str
    period: BudgetPeriod
    thresholds: Dict[ThresholdLevel, ThresholdState] = Field(default_factory=_untriggered)
    last_checked: datetime

    def is_triggered(self, level: ThresholdLevel) -> bool:
        state = self.thresholds.get(level)
        return bool(state and state.triggered)


def tracker_id(budget_id: str, period: BudgetPeriod) -> str:
    return f"{budget_id}_{period.year}_{period.month}"


def new_tracker(
    budget_id: str,
    owner_id: str,
    category: str,
    period: BudgetPeriod,
    now: datetime,
) -> ThresholdTracker:
    return ThresholdTracker(
        id=tracker_id(budget_id, period),
        budget_id=budget_id,
        owner_id=owner_id,
        category=category,
        period=period,
        last_checked=now,
    )


def rounded_percentage(total_spent: Decimal, budget_limit: Decimal) -> int:
    """Usage percentage rounded half-up, used only to compare against thresholds."""
    value = usage_percentage(total_spent, budget_limit)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def due_thresholds(percentage: int, tracker: ThresholdTracker) -> List[ThresholdLevel]:
    """Every level reached by ``percentage`` that the tracker has not fired yet.

    A jump from 60% to 105% returns all three levels, lowest first.
    """
    return [
        level
        for level in ThresholdLevel
        if percentage >= level.percentage and not tracker.is_triggered(level)
    ]
