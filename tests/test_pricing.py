"""Money, VAT and document number tests."""
from decimal import Decimal

from smartpos.core.enums import VatType
from smartpos.services.pricing import (
    generate_invoice_number,
    generate_receipt_number,
    inclusive_vat,
    line_vat,
    loyalty_points_for,
    money,
)


def test_money_rounds_half_up():
    assert money(Decimal("0.125")) == Decimal("0.13")
    assert money("2.5") == Decimal("2.50")
    assert money(3) == Decimal("3.00")


def test_inclusive_vat_at_sixteen_percent():
    assert inclusive_vat(Decimal("116.00")) == Decimal("16.00")
    assert inclusive_vat(Decimal("200.00")) == Decimal("27.59")
    assert inclusive_vat(Decimal("0")) == Decimal("0.00")


def test_inclusive_vat_custom_rate():
    assert inclusive_vat(Decimal("108.00"), rate=8) == Decimal("8.00")


def test_only_vatable_lines_carry_vat():
    assert line_vat(Decimal("116.00"), VatType.VATABLE) == Decimal("16.00")
    assert line_vat(Decimal("116.00"), VatType.ZERO_RATED) == Decimal("0.00")
    assert line_vat(Decimal("116.00"), "exempt") == Decimal("0.00")


def test_loyalty_point_per_hundred():
    assert loyalty_points_for(Decimal("99.99")) == 0
    assert loyalty_points_for(Decimal("250.00")) == 2
    assert loyalty_points_for(Decimal("-5")) == 0


def test_document_numbers_prefixed():
    receipt = generate_receipt_number()
    invoice = generate_invoice_number()
    assert receipt.startswith("RCP")
    assert invoice.startswith("INV")
    assert len(receipt) == 3 + 8 + 4
    assert generate_receipt_number("TST").startswith("TST")
