# models/budget.py
"""SQLAlchemy models for budgets, expenses, income and threshold tracking."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..config import DB_SCHEMA
from ..database import Base
from ..services.periods import utc_now

MONEY = Numeric(12, 2)


def _qualified(table_column: str) -> str:
    return f"{DB_SCHEMA}.{table_column}" if DB_SCHEMA else table_column


class Group(Base):
    """Shared household or team whose members share budgets."""
    __tablename__ = "groups"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    owner_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")


class GroupMember(Base):
    """Many-to-Many link between Users AND Groups."""
    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id"),
        {"schema": DB_SCHEMA},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(String, ForeignKey(_qualified("groups.id")), nullable=False)
    user_id = Column(String, nullable=False, index=True)
    role = Column(String, default="member")  # admin, member
    created_at = Column(DateTime(timezone=True), default=utc_now)

    group = relationship("Group", back_populates="members")


class Budget(Base):
    """Monthly spending limit for one category of a personal or group scope."""
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("scope_type", "scope_id", "category", "year", "month"),
        {"schema": DB_SCHEMA},
    )

    id = Column(String, primary_key=True)  # "{scope_id}_{category}_{year}_{month}"
    scope_type = Column(String, nullable=False)  # personal, group
    scope_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False)
    monthly_limit = Column(MONEY, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class Expense(Base):
    """Individual expense entry."""
    __tablename__ = "expenses"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope_type = Column(String, nullable=False)
    scope_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(String, nullable=True)
    # naive local wall-clock time, the form expense periods are computed from
    date = Column(DateTime, default=datetime.now, index=True)
    created_by = Column(String, nullable=False)


class IncomeSource(Base):
    """Recurring (or one-off) income counted against allocations."""
    __tablename__ = "income_sources"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope_type = Column(String, nullable=False)
    scope_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    amount = Column(MONEY, nullable=False)
    frequency = Column(String, nullable=False, default="monthly")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class SavingsGoal(Base):
    """Savings target with a monthly contribution commitment."""
    __tablename__ = "savings_goals"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope_type = Column(String, nullable=False)
    scope_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    target_amount = Column(MONEY, nullable=True)
    monthly_contribution = Column(MONEY, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=utc_now)


class ThresholdTracker(Base):
    """Which alert thresholds already fired for a budget in one period."""
    __tablename__ = "budget_threshold_trackers"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(String, primary_key=True)  # "{budget_id}_{year}_{month}"
    budget_id = Column(String, nullable=False, index=True)
    owner_id = Column(String, nullable=False)
    category = Column(String, nullable=False)
    year = Column(Integer, nullable=False, index=True)
    month = Column(Integer, nullable=False)
    warning_triggered = Column(Boolean, nullable=False, default=False)
    warning_triggered_at = Column(DateTime(timezone=True), nullable=True)
    critical_triggered = Column(Boolean, nullable=False, default=False)
    critical_triggered_at = Column(DateTime(timezone=True), nullable=True)
    exceeded_triggered = Column(Boolean, nullable=False, default=False)
    exceeded_triggered_at = Column(DateTime(timezone=True), nullable=True)
    last_checked = Column(DateTime(timezone=True), default=utc_now)


class Notification(Base):
    """In-app notification row; delivery channels read from here."""
    __tablename__ = "notifications"
    __table_args__ = {"schema": DB_SCHEMA}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)  # warning, critical, exceeded
    budget_id = Column(String, nullable=False)
    category = Column(String, nullable=False)
    percentage = Column(Integer, nullable=False)
    current = Column(MONEY, nullable=False)
    limit_amount = Column(MONEY, nullable=False)
    overage = Column(MONEY, nullable=True)
    group_id = Column(String, nullable=True)
    group_name = Column(String, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
