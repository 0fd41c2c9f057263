from __future__ import annotations

from ..extensions import db
from lounge.time_utils import to_utc_z
from .devices import _money

EXPENSE_CATEGORIES = ("rent", "electricity", "water", "other")
DEBT_STATUSES = ("pending", "paid")


class Expense(db.Model):
    """Operating cost booked against a calendar date."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("category IN ('rent', 'electricity', 'water', 'other')", name="ck_expenses_category"),
        db.CheckConstraint("amount >= 0", name="ck_expenses_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(16), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": _money(self.amount),
            "category": self.category,
            "date": self.date.isoformat() if self.date else None,
            "created_at": to_utc_z(self.created_at),
        }


class Debt(db.Model):
    """Money a customer owes the venue. Tracked on its own; not in daily summaries."""
    __tablename__ = "debts"
    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'paid')", name="ck_debts_status"),
        db.CheckConstraint("amount >= 0", name="ck_debts_amount"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(128), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "amount": _money(self.amount),
            "description": self.description,
            "status": self.status,
            "paid_at": to_utc_z(self.paid_at),
            "created_at": to_utc_z(self.created_at),
        }


class DailySummary(db.Model):
    """
    Derived financial roll-up for one calendar date.

    Recomputed in place by summary_service; never edited by hand.
    """
    __tablename__ = "daily_summaries"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, unique=True, index=True)
    sessions_revenue = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    sales_revenue = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    expenses_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discounts_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_income = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "sessions_revenue": _money(self.sessions_revenue),
            "sales_revenue": _money(self.sales_revenue),
            "expenses_total": _money(self.expenses_total),
            "discounts_total": _money(self.discounts_total),
            "net_income": _money(self.net_income),
            "updated_at": to_utc_z(self.updated_at),
        }
