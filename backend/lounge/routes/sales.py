# backend/lounge/routes/sales.py
"""
Till sales routes

- POST /api/sales/checkout: ring up a cart
- GET /api/sales: sales log, optionally for one date
- PATCH /api/sales/<id>: correct quantity or discount
- DELETE /api/sales/<id>: remove a sale (restocks by default)
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service
from ..services.sales_service import SaleError
from ..services.summary_service import day_bounds
from ..validation import ValidationError
from ..decorators import require_auth, require_admin
from lounge.time_utils import parse_iso_date


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/checkout")
@require_auth
@require_admin
def checkout_route():
    """
    Body:
    - lines: [{"product_id": int, "quantity": int}, ...]
    - discount_percent: 0..100 (optional, applies to every line)
    """
    data = request.get_json(silent=True) or {}
    try:
        sales = sales_service.checkout(data.get("lines"), data.get("discount_percent", 0))
        return jsonify({
            "sales": [s.to_dict() for s in sales],
            "count": len(sales),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to check out cart")
        return jsonify({"error": "Could not record the sale", "retryable": True}), 500


@sales_bp.get("")
@require_auth
@require_admin
def list_sales_route():
    """Query params: date (YYYY-MM-DD), product_id"""
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    start = end = None
    if day is not None:
        start, end = day_bounds(day)

    sales = sales_service.list_sales(
        start=start,
        end=end,
        product_id=request.args.get("product_id", type=int),
    )
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@sales_bp.patch("/<int:sale_id>")
@require_auth
@require_admin
def correct_sale_route(sale_id: int):
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.correct_sale(
            sale_id,
            quantity=data.get("quantity"),
            discount_percent=data.get("discount_percent"),
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to correct sale")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_admin
def delete_sale_route(sale_id: int):
    restock = request.args.get("restock", "true").lower() != "false"
    try:
        sales_service.delete_sale(sale_id, restock=restock)
        return jsonify({"ok": True}), 200

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error", "retryable": True}), 500
