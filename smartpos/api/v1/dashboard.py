"""Dashboard API endpoints."""
from datetime import date
from fastapi import APIRouter

from smartpos.core.dependencies import Executor, TenantCtx
from smartpos.repositories import customers as customers_repo
from smartpos.repositories import expenses as expenses_repo
from smartpos.repositories import products as products_repo
from smartpos.repositories import sales as sales_repo
from smartpos.repositories import suppliers as suppliers_repo
from smartpos.schemas.dashboard import DashboardOverview, InventoryAlerts
from smartpos.schemas.product import ProductResponse


router = APIRouter()


@router.get("/overview", response_model=DashboardOverview)
async def overview(ctx: TenantCtx, executor: Executor):
    schema = ctx.tenant_schema
    today = date.today()
    return DashboardOverview(
        today=await sales_repo.today_summary(executor, schema),
        total_products=await products_repo.count_products(executor, schema),
        low_stock_count=len(await products_repo.get_low_stock(executor, schema)),
        total_customers=await customers_repo.count_customers(executor, schema),
        outstanding_supplier_balance=await suppliers_repo.total_outstanding(executor, schema),
        month_expenses=await expenses_repo.total_expenses(executor, schema, today.replace(day=1), today),
    )


@router.get("/inventory-alerts", response_model=InventoryAlerts)
async def inventory_alerts(ctx: TenantCtx, executor: Executor):
    low_stock = await products_repo.get_low_stock(executor, ctx.tenant_schema)
    out_of_stock = await products_repo.get_out_of_stock(executor, ctx.tenant_schema)
    return InventoryAlerts(
        low_stock=[ProductResponse.model_validate(p) for p in low_stock],
        out_of_stock=[ProductResponse.model_validate(p) for p in out_of_stock],
    )
