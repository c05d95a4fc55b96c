"""Application configuration."""
from functools import lru_cache
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # App
    APP_NAME: str = "SmartPOS API"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    
    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 10
    TENANT_POOL_SIZE: int = 5
    TENANT_MAX_OVERFLOW: int = 5
    DATABASE_POOL_TIMEOUT: int = 2      # seconds waiting for a free connection
    DATABASE_CONNECT_TIMEOUT: int = 2
    DATABASE_POOL_RECYCLE: int = 30
    MAX_TENANT_POOLS: int = 50
    
    # JWT (REQUIRED)
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    
    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Subscriptions
    TRIAL_DAYS: int = 30
    GRACE_PERIOD_DAYS: int = 3

    # Point of sale
    VAT_RATE: int = 16
    LOYALTY_POINT_VALUE: int = 100
    RECEIPT_PREFIX: str = "RCP"
    INVOICE_PREFIX: str = "INV"

    # Payment gateway (optional)
    PAYMENT_GATEWAY_URL: Optional[str] = None
    PAYMENT_GATEWAY_API_KEY: Optional[str] = None
    PAYMENT_CALLBACK_URL: Optional[str] = None

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",")]
        return v
    
    class Config:
        env_file = ".env"      # Local only
        case_sensitive = True
        extra = "ignore"      # Ignore unrelated env vars


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
