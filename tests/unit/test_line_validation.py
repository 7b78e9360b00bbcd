"""Tests for LineSpec validation and field helpers."""

from decimal import Decimal
from uuid import uuid4

import pytest

from erp_kernel.domain.dtos import LineSpec, validate_line_specs
from erp_kernel.domain.stock_effect import InventoryTransactionType
from erp_kernel.domain.validation import (
    coerce_enum,
    optional_price,
    optional_text,
    positive_quantity,
    require_text,
)
from erp_kernel.exceptions import ValidationError


class TestValidateLineSpecs:
    def test_normalizes_and_numbers_lines(self):
        a, b = uuid4(), uuid4()
        lines = validate_line_specs(
            [LineSpec.debit(a, "10.005"), LineSpec.credit(b, 10, currency="eur")],
            default_currency="USD",
        )
        assert [ln.line_number for ln in lines] == [1, 2]
        assert lines[0].amount == Decimal("10.01")
        assert lines[0].currency == "USD"
        assert lines[1].currency == "EUR"
        assert lines[1].is_debit is False

    @pytest.mark.parametrize("count", [0, 1])
    def test_needs_two_lines(self, count):
        lines = [LineSpec.debit(uuid4(), "1.00") for _ in range(count)]
        with pytest.raises(ValidationError) as exc_info:
            validate_line_specs(lines, "USD")
        assert exc_info.value.field == "lines"

    @pytest.mark.parametrize("amount", ["0", "-5.00", "0.004"])
    def test_rejects_non_positive_amounts(self, amount):
        lines = [LineSpec(uuid4(), Decimal(amount), True), LineSpec.credit(uuid4(), "1.00")]
        with pytest.raises(ValidationError) as exc_info:
            validate_line_specs(lines, "USD")
        assert exc_info.value.field == "amount"

    def test_rejects_out_of_range_amount(self):
        lines = [LineSpec(uuid4(), Decimal("1e99"), True), LineSpec.credit(uuid4(), "1.00")]
        with pytest.raises(ValidationError) as exc_info:
            validate_line_specs(lines, "USD")
        assert exc_info.value.field == "amount"

    @pytest.mark.parametrize(
        "amount", ["10000000000000000", "9999999999999999.995", "12345678901234567890.01"]
    )
    def test_rejects_amount_wider_than_column(self, amount):
        lines = [LineSpec.debit(uuid4(), amount), LineSpec.credit(uuid4(), amount)]
        with pytest.raises(ValidationError) as exc_info:
            validate_line_specs(lines, "USD")
        assert exc_info.value.field == "amount"
        assert "out of range" in str(exc_info.value)

    def test_accepts_widest_amount(self):
        lines = validate_line_specs(
            [
                LineSpec.debit(uuid4(), "9999999999999999.99"),
                LineSpec.credit(uuid4(), "9999999999999999.99"),
            ],
            "USD",
        )
        assert lines[0].amount == Decimal("9999999999999999.99")

    def test_rejects_float_amount(self):
        lines = [LineSpec(uuid4(), 1.5, True), LineSpec.credit(uuid4(), "1.50")]
        with pytest.raises(ValidationError):
            validate_line_specs(lines, "USD")

    def test_rejects_unknown_currency(self):
        lines = [
            LineSpec.debit(uuid4(), "1.00", currency="ZZZ"),
            LineSpec.credit(uuid4(), "1.00"),
        ]
        with pytest.raises(ValidationError) as exc_info:
            validate_line_specs(lines, "USD")
        assert exc_info.value.field == "currency"

    def test_requires_account(self):
        lines = [LineSpec(None, Decimal("1"), True), LineSpec.credit(uuid4(), "1")]
        with pytest.raises(ValidationError):
            validate_line_specs(lines, "USD")


class TestFieldHelpers:
    def test_require_text_strips(self):
        assert require_text("  Cash ", "name", 100) == "Cash"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_require_text_missing(self, value):
        with pytest.raises(ValidationError) as exc_info:
            require_text(value, "name", 100)
        assert exc_info.value.field == "name"

    def test_require_text_too_long(self):
        with pytest.raises(ValidationError):
            require_text("x" * 21, "code", 20)

    def test_optional_text_blank_is_none(self):
        assert optional_text("  ", "notes") is None
        assert optional_text(None, "notes") is None

    def test_coerce_enum_accepts_member_and_value(self):
        T = InventoryTransactionType
        assert coerce_enum(T, T.ISSUE_STOCK, "type") is T.ISSUE_STOCK
        assert coerce_enum(T, "ISSUE_STOCK", "type") is T.ISSUE_STOCK

    def test_coerce_enum_rejects_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce_enum(InventoryTransactionType, "teleport", "transaction_type")
        assert exc_info.value.field == "transaction_type"

    def test_positive_quantity_rounds_to_three_places(self):
        assert positive_quantity("1.23456") == Decimal("1.235")

    @pytest.mark.parametrize("value", ["0", "-1", "0.0004", "abc", "NaN", "1e40"])
    def test_positive_quantity_rejects(self, value):
        with pytest.raises(ValidationError):
            positive_quantity(value)

    def test_optional_price(self):
        assert optional_price(None, "sales_price") is None
        assert optional_price("9.999", "sales_price") == Decimal("10.00")
        with pytest.raises(ValidationError):
            optional_price("-0.01", "sales_price")

    @pytest.mark.parametrize(
        "value", ["1000000000000000", "999999999999999.9995", "1234567890123456789.123"]
    )
    def test_positive_quantity_rejects_wider_than_column(self, value):
        with pytest.raises(ValidationError) as exc_info:
            positive_quantity(value)
        assert exc_info.value.field == "quantity"

    def test_positive_quantity_accepts_widest(self):
        assert positive_quantity("999999999999999.999") == Decimal("999999999999999.999")

    def test_optional_price_rejects_wider_than_column(self):
        with pytest.raises(ValidationError) as exc_info:
            optional_price("10000000000000000", "purchase_price")
        assert exc_info.value.field == "purchase_price"
        assert optional_price("9999999999999999.99", "purchase_price") == Decimal(
            "9999999999999999.99"
        )
