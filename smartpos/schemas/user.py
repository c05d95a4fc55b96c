"""User management schemas."""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from smartpos.core.enums import RecordStatus, UserRole


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: UserRole = UserRole.CASHIER


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    status: Optional[RecordStatus] = None
    password: Optional[str] = Field(None, min_length=6)
