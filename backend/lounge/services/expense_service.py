# Overview: Service-layer operations for expenses; every write re-rolls the affected day.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Expense, EXPENSE_CATEGORIES
from ..validation import ModelValidationPolicy
from .summary_service import recompute_for_dates
from lounge.time_utils import utcnow

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "amount", "category", "date"},
    required_on_create={"description", "amount", "category"},
    choices={"category": EXPENSE_CATEGORIES},
    non_negative={"amount"},
)


class ExpenseError(Exception):
    """Raised for expense operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def get_expense(expense_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id).first()
    if not expense:
        raise ExpenseError("Expense not found", status_code=404)
    return expense


def create_expense(patch: dict) -> Expense:
    """Expenses without a date are booked today."""
    expense = Expense(**patch)
    if expense.date is None:
        expense.date = utcnow().date()
    db.session.add(expense)
    db.session.flush()
    recompute_for_dates([expense.date])
    db.session.commit()
    return expense


def update_expense(expense_id: int, patch: dict) -> Expense:
    """Moving an expense to another date re-rolls both days."""
    expense = get_expense(expense_id)
    old_date = expense.date
    for k, v in patch.items():
        if k in EXPENSE_POLICY.writable_fields:
            setattr(expense, k, v)
    if expense.date is None:
        expense.date = old_date
    db.session.flush()
    recompute_for_dates([old_date, expense.date])
    db.session.commit()
    return expense


def delete_expense(expense_id: int) -> None:
    expense = get_expense(expense_id)
    day = expense.date
    db.session.delete(expense)
    db.session.flush()
    recompute_for_dates([day])
    db.session.commit()


def list_expenses(
    *,
    start: date | None = None,
    end: date | None = None,
    category: str | None = None,
) -> list[Expense]:
    query = db.session.query(Expense)
    if start is not None:
        query = query.filter(Expense.date >= start)
    if end is not None:
        query = query.filter(Expense.date <= end)
    if category:
        query = query.filter(Expense.category == category)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()
