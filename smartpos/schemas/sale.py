"""Sale schemas."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from smartpos.core.enums import PaymentMethod, SaleStatus


class SaleItemRequest(BaseModel):
    """Requested line.

    Price and VAT type are read from the product; extra keys such as a
    client-side `vat_type` are ignored.
    """
    product_id: str
    quantity: Decimal = Field(..., gt=0)


class SaleCreate(BaseModel):
    items: List[SaleItemRequest] = Field(..., min_length=1)
    customer_id: Optional[str] = None
    discount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: PaymentMethod
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    mpesa_code: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class VoidSaleRequest(BaseModel):
    reason: str = Field(..., max_length=500)


class SaleItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    total: Decimal
    discount: Decimal

    class Config:
        from_attributes = True


class SaleResponse(BaseModel):
    id: str
    receipt_no: str
    cashier_id: Optional[str] = None
    customer_id: Optional[str] = None
    subtotal: Decimal
    vat_amount: Decimal
    discount: Decimal
    total_amount: Decimal
    payment_method: PaymentMethod
    amount_paid: Decimal
    change_amount: Decimal
    mpesa_code: Optional[str] = None
    notes: Optional[str] = None
    status: SaleStatus
    created_at: datetime
    items: List[SaleItemResponse] = []

    class Config:
        from_attributes = True


class TodaySummary(BaseModel):
    total_transactions: int
    total_revenue: Decimal
    cash_sales: Decimal
    mpesa_sales: Decimal
    card_sales: Decimal
    total_vat: Decimal


class DailySales(BaseModel):
    sale_date: date
    transactions: int
    revenue: Decimal
    vat: Decimal
    discounts: Decimal


class TopProduct(BaseModel):
    product_id: str
    product_name: str
    quantity_sold: Decimal
    revenue: Decimal


class CashierPerformance(BaseModel):
    cashier_id: Optional[str] = None
    cashier_name: Optional[str] = None
    transactions: int
    revenue: Decimal


class PaymentMethodTotal(BaseModel):
    payment_method: PaymentMethod
    transactions: int
    revenue: Decimal
