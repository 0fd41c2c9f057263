# backend/lounge/routes/products.py
"""
Till catalog routes.

SECURITY: the catalog is part of the sales surface, so every route is
admin-only.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service
from ..services.products_service import ProductError, PRODUCT_POLICY
from ..validation import validate_payload, ValidationError
from ..decorators import require_auth, require_admin


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_admin
def list_products_route():
    """
    Query params:
    - category: "market" | "coffee" (optional)
    - in_stock: "true" to hide sold-out products
    """
    in_stock_only = request.args.get("in_stock", "false").lower() == "true"
    products = products_service.list_products(
        category=request.args.get("category"),
        in_stock_only=in_stock_only,
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = products_service.create_product(patch)
        return jsonify({"product": product.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = products_service.update_product(product_id, patch)
        return jsonify({"product": product.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
        return jsonify({"ok": True}), 200

    except ProductError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error", "retryable": True}), 500
