"""Authentication and registration schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from smartpos.core.enums import RecordStatus, SubscriptionStatus, UserRole


class LoginRequest(BaseModel):
    """Login is scoped by the business email of the tenant."""
    business_email: EmailStr
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Self-service tenant registration."""
    business_name: str = Field(..., min_length=2, max_length=255)
    business_email: EmailStr
    business_phone: Optional[str] = Field(None, max_length=20)
    business_address: Optional[str] = None
    admin_username: str = Field(..., min_length=3, max_length=100)
    admin_password: str = Field(..., min_length=6)
    admin_full_name: str = Field(..., min_length=1, max_length=255)
    admin_email: Optional[EmailStr] = None


class TokenResponse(BaseModel):
    """Token response schema."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    """Login identity as returned to clients."""
    id: str
    tenant_id: str
    username: str
    full_name: str
    email: Optional[str] = None
    role: UserRole
    status: RecordStatus
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class TenantSummary(BaseModel):
    id: str
    business_name: str
    tenant_schema: str
    subscription_plan: str
    subscription_status: SubscriptionStatus

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    """Login response with user, tenant and tokens."""
    user: UserResponse
    tenant: TenantSummary
    tokens: TokenResponse
