"""Purchase schemas."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from smartpos.core.enums import PaymentMethod, PurchaseStatus


class PurchaseItemRequest(BaseModel):
    product_id: str
    quantity: Decimal = Field(..., gt=0)
    unit_cost: Decimal = Field(..., ge=0)


class PurchaseCreate(BaseModel):
    supplier_id: str
    items: List[PurchaseItemRequest] = Field(..., min_length=1)
    amount_paid: Decimal = Field(Decimal("0"), ge=0)
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


class PurchasePaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod


class PurchaseItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal

    class Config:
        from_attributes = True


class PurchaseResponse(BaseModel):
    id: str
    supplier_id: str
    user_id: Optional[str] = None
    invoice_no: str
    subtotal: Decimal
    vat_amount: Decimal
    total_cost: Decimal
    amount_paid: Decimal
    balance: Decimal
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    status: PurchaseStatus
    created_at: datetime
    items: List[PurchaseItemResponse] = []

    class Config:
        from_attributes = True


class PurchasesSummary(BaseModel):
    total_purchases: int
    total_cost: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
