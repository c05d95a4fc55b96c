"""Supplier schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from smartpos.core.enums import RecordStatus


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    phone: str = Field(..., min_length=7, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    payment_terms: str = Field("cash", max_length=50)
    tax_pin: Optional[str] = Field(None, max_length=50)


class SupplierUpdate(BaseModel):
    """Balance is not updatable here."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, min_length=7, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    payment_terms: Optional[str] = Field(None, max_length=50)
    tax_pin: Optional[str] = Field(None, max_length=50)
    status: Optional[RecordStatus] = None


class SupplierResponse(BaseModel):
    id: str
    name: str
    contact_person: Optional[str] = None
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    payment_terms: str
    tax_pin: Optional[str] = None
    balance: Decimal
    status: RecordStatus
    created_at: datetime

    class Config:
        from_attributes = True
