# backend/lounge/routes/debts.py
"""
Customer debt ledger routes (admin-only).
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Debt
from ..services import debt_service
from ..services.debt_service import DebtError, DEBT_POLICY
from ..validation import validate_payload, ValidationError
from ..decorators import require_auth, require_admin


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("")
@require_auth
@require_admin
def list_debts_route():
    """Query params: status ("pending" | "paid"), customer (name substring)"""
    debts = debt_service.list_debts(
        status=request.args.get("status"),
        customer_name=request.args.get("customer"),
    )
    return jsonify({
        "items": [d.to_dict() for d in debts],
        "count": len(debts),
        "outstanding_total": debt_service.outstanding_total(),
    }), 200


@debts_bp.post("")
@require_auth
@require_admin
def create_debt_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Debt, payload=payload, policy=DEBT_POLICY, partial=False)
        debt = debt_service.create_debt(patch)
        return jsonify({"debt": debt.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create debt")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@debts_bp.post("/<int:debt_id>/pay")
@require_auth
@require_admin
def pay_debt_route(debt_id: int):
    try:
        debt = debt_service.mark_paid(debt_id)
        return jsonify({"debt": debt.to_dict()}), 200

    except DebtError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark debt paid")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@debts_bp.delete("/<int:debt_id>")
@require_auth
@require_admin
def delete_debt_route(debt_id: int):
    try:
        debt_service.delete_debt(debt_id)
        return jsonify({"ok": True}), 200

    except DebtError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete debt")
        return jsonify({"error": "Internal server error", "retryable": True}), 500
