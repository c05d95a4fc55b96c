"""API v1 router."""
from fastapi import APIRouter

from smartpos.api.v1.auth import router as auth_router
from smartpos.api.v1.products import router as products_router
from smartpos.api.v1.sales import router as sales_router
from smartpos.api.v1.purchases import router as purchases_router
from smartpos.api.v1.customers import router as customers_router
from smartpos.api.v1.suppliers import router as suppliers_router
from smartpos.api.v1.expenses import router as expenses_router
from smartpos.api.v1.users import router as users_router
from smartpos.api.v1.tenant import router as tenant_router
from smartpos.api.v1.payments import router as payments_router
from smartpos.api.v1.dashboard import router as dashboard_router


router = APIRouter(prefix="/v1")

router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
router.include_router(products_router, prefix="/products", tags=["Products"])
router.include_router(sales_router, prefix="/sales", tags=["Sales"])
router.include_router(purchases_router, prefix="/purchases", tags=["Purchases"])
router.include_router(customers_router, prefix="/customers", tags=["Customers"])
router.include_router(suppliers_router, prefix="/suppliers", tags=["Suppliers"])
router.include_router(expenses_router, prefix="/expenses", tags=["Expenses"])
router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(tenant_router, prefix="/tenant", tags=["Tenant"])
router.include_router(payments_router, prefix="/payments", tags=["Payments"])
router.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])
