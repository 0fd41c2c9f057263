# backend/lounge/routes/expenses.py
from flask import Blueprint, request, jsonify, current_app

from ..models import Expense
from ..services import expense_service
from ..services.expense_service import ExpenseError, EXPENSE_POLICY
from ..validation import validate_payload, ValidationError
from ..decorators import require_auth, require_admin
from lounge.time_utils import parse_iso_date


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_admin
def list_expenses_route():
    """Query params: start, end (YYYY-MM-DD, inclusive), category"""
    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400

    expenses = expense_service.list_expenses(
        start=start,
        end=end,
        category=request.args.get("category"),
    )
    return jsonify({"items": [e.to_dict() for e in expenses], "count": len(expenses)}), 200


@expenses_bp.post("")
@require_auth
@require_admin
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        expense = expense_service.create_expense(patch)
        return jsonify({"expense": expense.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@expenses_bp.patch("/<int:expense_id>")
@require_auth
@require_admin
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        expense = expense_service.update_expense(expense_id, patch)
        return jsonify({"expense": expense.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ExpenseError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_admin
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id)
        return jsonify({"ok": True}), 200

    except ExpenseError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error", "retryable": True}), 500
