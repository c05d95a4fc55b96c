"""SQLAlchemy models.

Importing this package registers every table on `PublicBase.metadata`
(shared schema) and `TenantBase.metadata` (per-tenant schema).
"""
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.models.billing import Payment, SubscriptionHistory, SubscriptionPlan
from smartpos.models.user import User
from smartpos.models.product import Product
from smartpos.models.customer import Customer
from smartpos.models.supplier import Supplier
from smartpos.models.sale import Sale, SaleItem
from smartpos.models.purchase import Purchase, PurchaseItem
from smartpos.models.expense import Expense

__all__ = [
    "Tenant", "TenantUser", "Payment", "SubscriptionHistory", "SubscriptionPlan",
    "User", "Product", "Customer", "Supplier", "Sale", "SaleItem",
    "Purchase", "PurchaseItem", "Expense",
]
