"""Domain and data-access errors.

Every error raised by repositories and services derives from
:class:`SmartPOSError`; the API layer maps ``status_code`` onto the response.
"""
from typing import Optional


class SmartPOSError(Exception):
    """Base error carrying an HTTP-equivalent status code."""
    status_code: int = 500
    code: Optional[str] = None

    def __init__(self, message: str = "Internal server error", *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(SmartPOSError):
    status_code = 404


class BusinessRuleError(SmartPOSError):
    """Input or state rejected before any data is mutated."""
    status_code = 400


class InsufficientStockError(BusinessRuleError):
    code = "INSUFFICIENT_STOCK"


class PaymentExceedsBalanceError(BusinessRuleError):
    code = "PAYMENT_EXCEEDS_BALANCE"


class SaleAlreadyVoidedError(BusinessRuleError):
    code = "SALE_ALREADY_VOIDED"


class AuthenticationError(SmartPOSError):
    status_code = 401


class PermissionDeniedError(SmartPOSError):
    status_code = 403


class SubscriptionInactiveError(PermissionDeniedError):
    code = "SUBSCRIPTION_EXPIRED"


class DataAccessError(SmartPOSError):
    """Failure reported by the database driver."""
    status_code = 500


class ConstraintViolationError(DataAccessError):
    """Unique, foreign-key or not-null violation."""
    status_code = 409


class InvalidSchemaNameError(SmartPOSError):
    status_code = 500


class ServiceUnavailableError(SmartPOSError):
    """An optional external service is not configured or reachable."""
    status_code = 503
