# Overview: Service-layer operations for customer debts.

from __future__ import annotations

from ..extensions import db
from ..models import Debt
from ..validation import ModelValidationPolicy
from .billing import round_money
from lounge.time_utils import utcnow

DEBT_POLICY = ModelValidationPolicy(
    writable_fields={"customer_name", "amount", "description"},
    required_on_create={"customer_name", "amount"},
    non_negative={"amount"},
)


class DebtError(Exception):
    """Raised for debt operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def get_debt(debt_id: int) -> Debt:
    debt = db.session.query(Debt).filter_by(id=debt_id).first()
    if not debt:
        raise DebtError("Debt not found", status_code=404)
    return debt


def create_debt(patch: dict) -> Debt:
    debt = Debt(status="pending", **patch)
    db.session.add(debt)
    db.session.commit()
    return debt


def mark_paid(debt_id: int) -> Debt:
    debt = get_debt(debt_id)
    if debt.status == "paid":
        raise DebtError("Debt is already paid", details={"paid_at": debt.to_dict()["paid_at"]}, status_code=409)
    debt.status = "paid"
    debt.paid_at = utcnow()
    db.session.commit()
    return debt


def delete_debt(debt_id: int) -> None:
    debt = get_debt(debt_id)
    db.session.delete(debt)
    db.session.commit()


def list_debts(status: str | None = None, customer_name: str | None = None) -> list[Debt]:
    query = db.session.query(Debt)
    if status:
        query = query.filter(Debt.status == status)
    if customer_name:
        query = query.filter(Debt.customer_name.ilike(f"%{customer_name}%"))
    return query.order_by(Debt.created_at.desc(), Debt.id.desc()).all()


def outstanding_total() -> str:
    total = db.session.query(db.func.coalesce(db.func.sum(Debt.amount), 0)).filter(Debt.status == "pending").scalar()
    return str(round_money(total or 0))
