"""Money arithmetic, VAT and document numbers.

Prices are VAT inclusive: the VAT contained in an amount is
``amount * rate / (100 + rate)``, rounded half-up to cents per line.
"""
import secrets
import time
from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import Optional, Union

from smartpos.core.config import settings
from smartpos.core.enums import VatType


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def money(value: Number) -> Decimal:
    """Quantize to cents, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def inclusive_vat(amount: Number, rate: Optional[int] = None) -> Decimal:
    """VAT contained in a VAT-inclusive `amount`."""
    rate = settings.VAT_RATE if rate is None else rate
    amount = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    return money(amount * rate / (100 + rate))


def line_vat(subtotal: Number, vat_type: Union[VatType, str]) -> Decimal:
    if VatType(vat_type) is VatType.VATABLE:
        return inclusive_vat(subtotal)
    return ZERO


def _document_number(prefix: str) -> str:
    millis = str(int(time.time() * 1000))[-8:]
    return f"{prefix}{millis}{secrets.token_hex(2)}".upper()


def generate_receipt_number(prefix: Optional[str] = None) -> str:
    """e.g. ``RCP48213377A1F0``."""
    return _document_number(prefix or settings.RECEIPT_PREFIX)


def generate_invoice_number(prefix: Optional[str] = None) -> str:
    return _document_number(prefix or settings.INVOICE_PREFIX)


def loyalty_points_for(total: Number) -> int:
    """One point per LOYALTY_POINT_VALUE of the sale total."""
    total = Decimal(str(total)) if not isinstance(total, Decimal) else total
    if total <= 0:
        return 0
    return int((total / settings.LOYALTY_POINT_VALUE).to_integral_value(rounding=ROUND_FLOOR))
