import os
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

# tables without a schema, so the SQL stores can run on SQLite
os.environ["DB_SCHEMA"] = ""

from budget_alerts.auth import get_current_user
from budget_alerts.dependencies import get_stores
from budget_alerts.main import app
from budget_alerts.services.domain import ExpenseRecord
from budget_alerts.stores.memory import memory_stores


def make_expense(category, amount, year, month, day=1, description=None):
    return ExpenseRecord(
        category=category,
        amount=Decimal(str(amount)),
        date=datetime(year, month, day, 12, 0),
        description=description,
    )


@pytest.fixture
def stores():
    return memory_stores()


@pytest.fixture
def client(stores):
    app.dependency_overrides[get_stores] = lambda: stores
    app.dependency_overrides[get_current_user] = lambda: "alice"
    yield TestClient(app)
    app.dependency_overrides.clear()
