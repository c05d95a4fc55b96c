"""Tenant settings and subscription schemas."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from smartpos.core.enums import PaymentStatus, SubscriptionStatus


class TenantResponse(BaseModel):
    id: str
    tenant_name: str
    tenant_schema: str
    business_name: str
    business_email: str
    business_phone: Optional[str] = None
    business_address: Optional[str] = None
    subscription_status: SubscriptionStatus
    subscription_plan: str
    is_trial: bool
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    mpesa_till_number: Optional[str] = None
    mpesa_paybill: Optional[str] = None
    mpesa_account_number: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TenantSettingsUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=2, max_length=255)
    business_phone: Optional[str] = Field(None, max_length=20)
    business_address: Optional[str] = None
    mpesa_till_number: Optional[str] = Field(None, max_length=20)
    mpesa_paybill: Optional[str] = Field(None, max_length=20)
    mpesa_account_number: Optional[str] = Field(None, max_length=50)


class TenantStats(BaseModel):
    user_count: int
    active_users: int


class PlanResponse(BaseModel):
    plan_name: str
    display_name: str
    price_monthly: Decimal
    max_users: Optional[int] = None
    max_products: Optional[int] = None
    max_transactions_per_month: Optional[int] = None
    features: list = []

    class Config:
        from_attributes = True


class SubscriptionInfo(BaseModel):
    subscription_plan: str
    subscription_status: SubscriptionStatus
    is_trial: bool
    is_active: bool
    expires_at: Optional[datetime] = None
    days_remaining: Optional[int] = None
    display_name: Optional[str] = None
    features: list = []


class SubscriptionHistoryResponse(BaseModel):
    action: str
    previous_plan: Optional[str] = None
    new_plan: Optional[str] = None
    reason: Optional[str] = None
    performed_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class CancelSubscriptionRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PaymentInitiateRequest(BaseModel):
    plan_name: str
    months: int = Field(..., ge=1, le=24)
    phone: str = Field(..., min_length=9, max_length=20)


class PaymentCallback(BaseModel):
    """Result posted by the payment gateway."""
    checkout_request_id: str
    success: bool
    result_code: Optional[str] = None
    result_desc: Optional[str] = None
    transaction_id: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    subscription_period: str
    subscription_months: int
    checkout_request_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentHistory(BaseModel):
    payments: List[PaymentResponse]
