"""Sales API endpoints."""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Query, status

from smartpos.core.dependencies import Executor, Managers, TenantCtx, WRITE_ACCESS
from smartpos.core.enums import PaymentMethod, SaleStatus
from smartpos.repositories import sales as sales_repo
from smartpos.schemas.common import Page
from smartpos.schemas.sale import (
    CashierPerformance, DailySales, PaymentMethodTotal, SaleCreate, SaleResponse,
    TodaySummary, TopProduct, VoidSaleRequest,
)


router = APIRouter()


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_sale(body: SaleCreate, ctx: TenantCtx, executor: Executor):
    """Checkout. Any role may sell."""
    sale = await sales_repo.complete_sale(executor, ctx.tenant_schema, body, ctx.user_id)
    return SaleResponse.model_validate(sale)


@router.get("", response_model=Page[SaleResponse])
async def list_sales(
    ctx: TenantCtx,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    cashier_id: Optional[str] = None,
    payment_method: Optional[PaymentMethod] = None,
    sale_status: Optional[SaleStatus] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    sales, total = await sales_repo.list_sales(
        executor, ctx.tenant_schema, page, page_size,
        cashier_id=cashier_id, payment_method=payment_method, status=sale_status,
        start=start_date, end=end_date,
    )
    return Page[SaleResponse](
        items=[SaleResponse.model_validate(s) for s in sales],
        total=total, page=page, page_size=page_size,
    )


@router.get("/summary/today", response_model=TodaySummary)
async def today_summary(ctx: TenantCtx, executor: Executor):
    return await sales_repo.today_summary(executor, ctx.tenant_schema)


@router.get("/report", response_model=List[DailySales])
async def sales_report(
    ctx: TenantCtx,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return await sales_repo.daily_report(executor, ctx.tenant_schema, start_date, end_date)


@router.get("/top-products", response_model=List[TopProduct])
async def top_products(
    ctx: TenantCtx,
    executor: Executor,
    limit: int = Query(10, ge=1, le=100),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return await sales_repo.top_products(executor, ctx.tenant_schema, limit, start_date, end_date)


@router.get("/cashier-performance", response_model=List[CashierPerformance])
async def cashier_performance(
    ctx: Managers,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return await sales_repo.cashier_performance(executor, ctx.tenant_schema, start_date, end_date)


@router.get("/payment-methods", response_model=List[PaymentMethodTotal])
async def payment_methods(
    ctx: TenantCtx,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return await sales_repo.payment_method_breakdown(executor, ctx.tenant_schema, start_date, end_date)


@router.get("/receipt/{receipt_no}", response_model=SaleResponse)
async def get_sale_by_receipt(receipt_no: str, ctx: TenantCtx, executor: Executor):
    sale = await sales_repo.get_sale_by_receipt(executor, ctx.tenant_schema, receipt_no)
    return SaleResponse.model_validate(sale)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(sale_id: str, ctx: TenantCtx, executor: Executor):
    sale = await sales_repo.get_sale(executor, ctx.tenant_schema, sale_id)
    return SaleResponse.model_validate(sale)


@router.post("/{sale_id}/void", response_model=SaleResponse, dependencies=WRITE_ACCESS)
async def void_sale(sale_id: str, body: VoidSaleRequest, ctx: Managers, executor: Executor):
    """Reverse a sale and restore its stock (admin/manager only)."""
    sale = await sales_repo.void_sale(executor, ctx.tenant_schema, sale_id, body.reason, ctx.user_id)
    return SaleResponse.model_validate(sale)
