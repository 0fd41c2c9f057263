from datetime import date
from decimal import Decimal

import pytest

from lounge.models import Device, Expense
from lounge.services.device_service import DEVICE_POLICY
from lounge.services.expense_service import EXPENSE_POLICY
from lounge.validation import ValidationError, validate_payload


def test_expense_payload_is_coerced():
    patch = validate_payload(
        model=Expense,
        payload={"description": " Water bill ", "amount": "12.5", "category": "water", "date": "2025-04-05"},
        policy=EXPENSE_POLICY,
        partial=False,
    )
    assert patch == {
        "description": "Water bill",
        "amount": Decimal("12.5"),
        "category": "water",
        "date": date(2025, 4, 5),
    }


@pytest.mark.parametrize("value", ["05/04/2025", "2025-04-05T10:00:00", 20250405])
def test_expense_date_must_be_a_calendar_date(value):
    with pytest.raises(ValidationError):
        validate_payload(
            model=Expense,
            payload={"date": value},
            policy=EXPENSE_POLICY,
            partial=True,
        )


@pytest.mark.parametrize("field", ["created_at", "id", "status"])
def test_non_writable_columns_rejected(field):
    with pytest.raises(ValidationError):
        validate_payload(model=Device, payload={field: "x"}, policy=DEVICE_POLICY, partial=True)


@pytest.mark.parametrize("value", [True, "abc", "NaN", float("inf")])
def test_rates_must_be_finite_numbers(value):
    with pytest.raises(ValidationError):
        validate_payload(model=Device, payload={"hourly_rate": value}, policy=DEVICE_POLICY, partial=True)


def test_every_policy_field_has_a_supported_column_type():
    from sqlalchemy import Date, Integer, Numeric, String, Text

    from lounge.models import Debt, Product
    from lounge.services.debt_service import DEBT_POLICY
    from lounge.services.products_service import PRODUCT_POLICY

    for model, policy in (
        (Device, DEVICE_POLICY),
        (Expense, EXPENSE_POLICY),
        (Debt, DEBT_POLICY),
        (Product, PRODUCT_POLICY),
    ):
        columns = {c.key: c for c in model.__mapper__.columns}
        for name in policy.writable_fields:
            assert isinstance(columns[name].type, (Date, Integer, Numeric, String, Text)), (model, name)
