from datetime import date
from decimal import Decimal

from budget_alerts.services.impact import preview_impact
from budget_alerts.services.periods import BudgetPeriod
from budget_alerts.services.status import BudgetStatus
from budget_alerts.services.usage import calculate_usage

from .conftest import make_expense

SEPTEMBER = BudgetPeriod(month=9, year=2026)


def snapshot(spent):
    expenses = [make_expense("Groceries", spent, 2026, 9)]
    return calculate_usage("Groceries", Decimal(500), expenses, SEPTEMBER, today=date(2026, 9, 10))


def test_expense_that_stays_in_status():
    impact = preview_impact(snapshot(100), Decimal(50))
    assert impact.total_spent == Decimal(150)
    assert impact.percentage_used == 30
    assert impact.status == BudgetStatus.SAFE
    assert impact.status_will_change is False
    assert impact.will_exceed_budget is False
    assert impact.amount_over_budget is None


def test_expense_that_pushes_over_budget():
    impact = preview_impact(snapshot(400), Decimal(150))
    assert impact.previous_status == BudgetStatus.WARNING
    assert impact.status == BudgetStatus.OVER
    assert impact.status_will_change is True
    assert impact.will_exceed_budget is True
    assert impact.amount_over_budget == Decimal(50)


def test_landing_exactly_on_the_limit_is_not_over():
    impact = preview_impact(snapshot(450), Decimal(50))
    assert impact.percentage_used == 100
    assert impact.status == BudgetStatus.CRITICAL
    assert impact.will_exceed_budget is False
