# backend/lounge/services/products_service.py
"""
Till catalog.

Stock only goes down through sales. The one way it goes back up is an
admin editing the product (or a sale being corrected or removed).
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, PRODUCT_CATEGORIES
from ..validation import ModelValidationPolicy

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "stock", "category"},
    required_on_create={"name", "price", "category"},
    choices={"category": PRODUCT_CATEGORIES},
    non_negative={"price", "stock"},
)

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields


class ProductError(Exception):
    """Raised for product operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise ProductError("Product not found", status_code=404)
    return product


def list_products(category: str | None = None, in_stock_only: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if in_stock_only:
        query = query.filter(Product.stock > 0)
    return query.order_by(Product.category.asc(), Product.name.asc()).all()


def create_product(patch: dict) -> Product:
    product = Product()
    apply_product_patch(product, patch)
    if product.stock is None:
        product.stock = 0
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    apply_product_patch(product, patch)
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    """Past sales keep their price snapshot and lose the product link."""
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()
