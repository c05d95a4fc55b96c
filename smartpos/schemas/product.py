"""Product schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from smartpos.core.enums import RecordStatus, StockOperation, VatType


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    barcode: str = Field(..., min_length=1, max_length=50)
    category: str = Field(..., min_length=1, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    cost_price: Decimal = Field(..., ge=0)
    selling_price: Decimal = Field(..., ge=0)
    wholesale_price: Optional[Decimal] = Field(None, ge=0)
    vat_type: VatType = VatType.VATABLE
    unit_of_measure: str = Field("pcs", max_length=20)
    stock_quantity: Decimal = Field(Decimal("0"), ge=0)
    reorder_level: Decimal = Field(Decimal("10"), ge=0)
    expiry_tracking: bool = False
    description: Optional[str] = None


class ProductUpdate(BaseModel):
    """Partial update; stock changes go through stock adjustment."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    barcode: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    wholesale_price: Optional[Decimal] = Field(None, ge=0)
    vat_type: Optional[VatType] = None
    unit_of_measure: Optional[str] = Field(None, max_length=20)
    reorder_level: Optional[Decimal] = Field(None, ge=0)
    expiry_tracking: Optional[bool] = None
    description: Optional[str] = None
    status: Optional[RecordStatus] = None


class StockAdjustment(BaseModel):
    quantity: Decimal = Field(..., gt=0)
    operation: StockOperation


class ProductResponse(BaseModel):
    id: str
    name: str
    barcode: str
    category: str
    subcategory: Optional[str] = None
    cost_price: Decimal
    selling_price: Decimal
    wholesale_price: Optional[Decimal] = None
    vat_type: VatType
    unit_of_measure: str
    stock_quantity: Decimal
    reorder_level: Decimal
    expiry_tracking: bool
    description: Optional[str] = None
    status: RecordStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryCount(BaseModel):
    category: str
    product_count: int
