"""
Till Sales Service

WHY one Sale row per cart line: each line keeps its own price snapshot and
its share of the cart discount, so the daily summary can total revenue and
discounts without re-reading the catalog.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import Product, Sale
from ..validation import ValidationError, parse_discount_percent, parse_positive_int
from .billing import apply_discount, round_money
from .concurrency import lock_for_update
from .summary_service import recompute_daily_summary
from lounge.time_utils import utcnow


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def _parse_lines(lines) -> list[tuple[int, int]]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("At least one line is required")
    parsed = []
    for line in lines:
        if not isinstance(line, dict):
            raise ValidationError("Each line must be an object")
        product_id = parse_positive_int(line.get("product_id"), "product_id")
        quantity = parse_positive_int(line.get("quantity"), "quantity")
        parsed.append((product_id, quantity))
    return parsed


def _lock_product(product_id: int) -> Product | None:
    return lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()


def _validate_stock(parsed: list[tuple[int, int]]) -> dict[int, Product]:
    requested: dict[int, int] = {}
    for product_id, qty in parsed:
        requested[product_id] = requested.get(product_id, 0) + qty

    products: dict[int, Product] = {}
    missing = []
    insufficient = []
    for product_id, qty in requested.items():
        product = _lock_product(product_id)
        if not product:
            missing.append(product_id)
            continue
        products[product_id] = product
        if product.stock < qty:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "stock": product.stock,
            })

    if missing:
        raise SaleError("Product not found", details={"product_ids": missing}, status_code=404)
    if insufficient:
        raise SaleError("Insufficient stock", details={"items": insufficient})
    return products


def checkout(lines, discount_percent=0, now: datetime | None = None) -> list[Sale]:
    """
    Ring up a cart.

    Each line becomes a Sale with the product's current price, the cart
    discount applied, and stock decremented, all in one transaction.
    """
    # Stored as Numeric(5, 2); apply the same value that is kept
    pct = round_money(parse_discount_percent(discount_percent))
    parsed = _parse_lines(lines)
    now = now or utcnow()

    try:
        products = _validate_stock(parsed)

        sales = []
        for product_id, qty in parsed:
            product = products[product_id]
            unit_price = round_money(product.price)
            total_price = round_money(unit_price * qty)
            discount_amount, final_amount = apply_discount(total_price, pct)

            sale = Sale(
                product_id=product.id,
                quantity=qty,
                unit_price=unit_price,
                total_price=total_price,
                discount_percent=pct,
                discount_amount=discount_amount,
                final_amount=final_amount,
                created_at=now,
            )
            product.stock -= qty
            db.session.add(sale)
            sales.append(sale)

        db.session.flush()
        recompute_daily_summary(now.date(), commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return sales


def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise SaleError("Sale not found", status_code=404)
    return sale


def correct_sale(sale_id: int, quantity=None, discount_percent=None) -> Sale:
    """
    Explicit correction of a recorded sale.

    Quantity changes move stock by the difference. The stored discount
    percent is re-applied to the new total unless a new one is given.
    """
    sale = get_sale(sale_id)
    new_quantity = sale.quantity if quantity is None else parse_positive_int(quantity, "quantity")
    if discount_percent is None:
        pct = Decimal(sale.discount_percent)
    else:
        pct = round_money(parse_discount_percent(discount_percent))

    try:
        diff = new_quantity - sale.quantity
        if diff and sale.product_id is not None:
            product = _lock_product(sale.product_id)
            if product is not None:
                if diff > product.stock:
                    raise SaleError("Insufficient stock", details={
                        "items": [{"product_id": product.id, "requested_quantity": diff, "stock": product.stock}],
                    })
                product.stock -= diff

        sale.quantity = new_quantity
        sale.total_price = round_money(Decimal(sale.unit_price) * new_quantity)
        sale.discount_percent = pct
        sale.discount_amount, sale.final_amount = apply_discount(sale.total_price, pct)

        db.session.flush()
        recompute_daily_summary(sale.created_at.date(), commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return sale


def delete_sale(sale_id: int, restock: bool = True) -> None:
    sale = get_sale(sale_id)
    day = sale.created_at.date()

    try:
        if restock and sale.product_id is not None:
            product = _lock_product(sale.product_id)
            if product is not None:
                product.stock += sale.quantity
        db.session.delete(sale)
        db.session.flush()
        recompute_daily_summary(day, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    product_id: int | None = None,
) -> list[Sale]:
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
