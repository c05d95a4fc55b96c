"""Enum definitions for the application."""
from enum import Enum


class UserRole(str, Enum):
    """User role options."""
    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    STOREKEEPER = "storekeeper"
    SUPER_ADMIN = "super_admin"


class RecordStatus(str, Enum):
    """Soft-delete status shared by catalogue and people tables."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class VatType(str, Enum):
    """Product VAT classification."""
    VATABLE = "vatable"
    ZERO_RATED = "zero_rated"
    EXEMPT = "exempt"


class PaymentMethod(str, Enum):
    """Tender used at the till or towards a supplier."""
    CASH = "cash"
    MPESA = "mpesa"
    CARD = "card"
    CREDIT = "credit"
    BANK = "bank"


class SaleStatus(str, Enum):
    """Sale lifecycle; voided is terminal."""
    COMPLETED = "completed"
    VOIDED = "voided"


class PurchaseStatus(str, Enum):
    COMPLETED = "completed"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubscriptionStatus(str, Enum):
    """Tenant subscription status."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    INACTIVE = "inactive"


class PaymentStatus(str, Enum):
    """Subscription payment status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class StockOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
