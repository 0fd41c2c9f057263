from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from lounge.extensions import db
from lounge.models import DailySummary, Product, Sale
from lounge.services import products_service, sales_service
from lounge.services.sales_service import SaleError
from lounge.validation import ValidationError

T0 = datetime(2025, 4, 5, 12, 0, 0)


def _stock(product_id):
    return db.session.get(Product, product_id).stock


class TestCheckout:
    def test_one_sale_per_line_with_shared_discount(self, cola, coffee):
        sales = sales_service.checkout(
            [
                {"product_id": cola.id, "quantity": 3},
                {"product_id": coffee.id, "quantity": 2},
            ],
            10,
            now=T0,
        )

        assert len(sales) == 2
        cola_sale, coffee_sale = sales
        assert cola_sale.unit_price == Decimal("0.50")
        assert cola_sale.total_price == Decimal("1.50")
        assert cola_sale.final_amount == Decimal("1.35")
        assert cola_sale.discount_amount == Decimal("0.15")
        assert coffee_sale.final_amount == Decimal("1.35")

        assert _stock(cola.id) == 7
        assert _stock(coffee.id) == 3

        summary = db.session.query(DailySummary).filter_by(date=T0.date()).one()
        assert summary.sales_revenue == Decimal("2.70")
        assert summary.discounts_total == Decimal("0.30")

    def test_insufficient_stock_rejects_whole_cart(self, cola, coffee):
        with pytest.raises(SaleError) as exc:
            sales_service.checkout(
                [
                    {"product_id": cola.id, "quantity": 1},
                    {"product_id": coffee.id, "quantity": 6},
                ],
                now=T0,
            )

        assert str(exc.value) == "Insufficient stock"
        assert exc.value.details["items"][0]["product_id"] == coffee.id
        assert db.session.query(Sale).count() == 0
        assert _stock(cola.id) == 10

    def test_repeated_product_lines_are_summed_for_stock(self, coffee):
        with pytest.raises(SaleError):
            sales_service.checkout(
                [
                    {"product_id": coffee.id, "quantity": 3},
                    {"product_id": coffee.id, "quantity": 3},
                ],
                now=T0,
            )
        assert _stock(coffee.id) == 5

    def test_missing_product(self):
        with pytest.raises(SaleError) as exc:
            sales_service.checkout([{"product_id": 4242, "quantity": 1}], now=T0)
        assert exc.value.status_code == 404

    @pytest.mark.parametrize("lines", [[], None, [{"product_id": 1, "quantity": 0}], ["cola"]])
    def test_malformed_lines(self, lines):
        with pytest.raises(ValidationError):
            sales_service.checkout(lines, now=T0)

    def test_discount_out_of_range(self, cola):
        with pytest.raises(ValidationError):
            sales_service.checkout([{"product_id": cola.id, "quantity": 1}], 101, now=T0)
        assert _stock(cola.id) == 10


class TestCorrections:
    def test_quantity_correction_moves_stock_and_keeps_discount(self, cola):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 2}], 50, now=T0)

        corrected = sales_service.correct_sale(sale.id, quantity=4)

        assert corrected.quantity == 4
        assert corrected.total_price == Decimal("2.00")
        assert corrected.final_amount == Decimal("1.00")
        assert _stock(cola.id) == 6

    def test_correction_beyond_stock_rejected(self, coffee):
        (sale,) = sales_service.checkout([{"product_id": coffee.id, "quantity": 1}], now=T0)
        with pytest.raises(SaleError):
            sales_service.correct_sale(sale.id, quantity=10)

    def test_delete_restocks_and_rerolls_summary(self, cola):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 4}], now=T0)

        sales_service.delete_sale(sale.id)

        assert _stock(cola.id) == 10
        summary = db.session.query(DailySummary).filter_by(date=T0.date()).one()
        assert summary.sales_revenue == Decimal("0.00")

    def test_price_change_does_not_rewrite_history(self, cola):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 1}], now=T0)
        products_service.update_product(cola.id, {"price": Decimal("0.80")})

        assert db.session.get(Sale, sale.id).unit_price == Decimal("0.50")

    def test_deleting_product_keeps_sale(self, cola):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 1}], now=T0)
        products_service.delete_product(cola.id)

        kept = db.session.get(Sale, sale.id)
        assert kept.product_id is None
        assert kept.to_dict()["product_name"] is None

    def test_correction_reapplies_the_original_percent(self):
        product = Product(name="Nescafe", price=Decimal("1.25"), stock=20, category="coffee")
        db.session.add(product)
        db.session.commit()

        (sale,) = sales_service.checkout([{"product_id": product.id, "quantity": 3}], 10, now=T0)
        assert sale.final_amount == Decimal("3.38")
        assert sale.discount_percent == Decimal("10.00")

        corrected = sales_service.correct_sale(sale.id, quantity=10)

        assert corrected.total_price == Decimal("12.50")
        assert corrected.final_amount == Decimal("11.25")
        assert corrected.discount_amount == Decimal("1.25")
        assert corrected.discount_percent == Decimal("10.00")

    def test_new_percent_replaces_stored_one(self, cola):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 3}], 10, now=T0)
        corrected = sales_service.correct_sale(sale.id, discount_percent=0)
        assert corrected.discount_percent == Decimal("0.00")
        assert corrected.final_amount == Decimal("1.50")


class TestFailedWrites:
    @staticmethod
    def _fail_summary(monkeypatch):
        def boom(*args, **kwargs):
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(sales_service, "recompute_daily_summary", boom)

    def test_failed_correction_leaves_sale_and_stock_untouched(self, cola, monkeypatch):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 2}], now=T0)
        self._fail_summary(monkeypatch)

        with pytest.raises(OperationalError):
            sales_service.correct_sale(sale.id, quantity=5)

        assert db.session.get(Sale, sale.id).quantity == 2
        assert db.session.get(Sale, sale.id).total_price == Decimal("1.00")
        assert _stock(cola.id) == 8

    def test_failed_delete_keeps_sale_and_stock(self, cola, monkeypatch):
        (sale,) = sales_service.checkout([{"product_id": cola.id, "quantity": 2}], now=T0)
        self._fail_summary(monkeypatch)

        with pytest.raises(OperationalError):
            sales_service.delete_sale(sale.id)

        assert db.session.get(Sale, sale.id) is not None
        assert _stock(cola.id) == 8
