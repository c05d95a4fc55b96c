"""Expense schemas."""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from smartpos.core.enums import ExpenseStatus, PaymentMethod


class ExpenseCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    reference: Optional[str] = Field(None, max_length=100)
    expense_date: Optional[date] = None


class ExpenseUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    reference: Optional[str] = Field(None, max_length=100)
    expense_date: Optional[date] = None
    status: Optional[ExpenseStatus] = None


class ExpenseResponse(BaseModel):
    id: str
    category: str
    description: Optional[str] = None
    amount: Decimal
    payment_method: PaymentMethod
    reference: Optional[str] = None
    user_id: Optional[str] = None
    expense_date: date
    status: ExpenseStatus
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseCategoryTotal(BaseModel):
    category: str
    count: int
    total: Decimal
