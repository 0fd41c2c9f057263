from __future__ import annotations

from ..extensions import db
from lounge.time_utils import to_utc_z
from .devices import _money

PRODUCT_CATEGORIES = ("market", "coffee")


class Product(db.Model):
    """Snack and drink catalog for the till."""
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("category IN ('market', 'coffee')", name="ck_products_category"),
        db.CheckConstraint("price >= 0", name="ck_products_price"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(16), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": _money(self.price),
            "stock": self.stock,
            "category": self.category,
            "created_at": to_utc_z(self.created_at),
        }


class Sale(db.Model):
    """
    One till line: a product, a quantity, and the price at the moment of sale.

    WHY unit_price snapshot: later price edits must not rewrite history.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity"),
        db.CheckConstraint("unit_price >= 0", name="ck_sales_unit_price"),
        db.CheckConstraint("total_price >= 0", name="ck_sales_total_price"),
        db.CheckConstraint("final_amount >= 0", name="ck_sales_final_amount"),
        db.CheckConstraint("discount_percent >= 0 AND discount_percent <= 100", name="ck_sales_discount_percent"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    # Cart discount as entered; corrections re-apply it to the new total
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "total_price": _money(self.total_price),
            "discount_percent": _money(self.discount_percent),
            "discount_amount": _money(self.discount_amount),
            "final_amount": _money(self.final_amount),
            "created_at": to_utc_z(self.created_at),
        }
