"""Purchase API endpoints."""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Query, status

from smartpos.core.dependencies import Executor, Managers, StockManagers, WRITE_ACCESS
from smartpos.repositories import purchases as purchases_repo
from smartpos.schemas.common import Page
from smartpos.schemas.purchase import (
    PurchaseCreate, PurchasePaymentRequest, PurchaseResponse, PurchasesSummary,
)


router = APIRouter()


@router.post("", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_purchase(body: PurchaseCreate, ctx: StockManagers, executor: Executor):
    purchase = await purchases_repo.record_purchase(executor, ctx.tenant_schema, body, ctx.user_id)
    return PurchaseResponse.model_validate(purchase)


@router.get("", response_model=Page[PurchaseResponse])
async def list_purchases(
    ctx: StockManagers,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    supplier_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    purchases, total = await purchases_repo.list_purchases(
        executor, ctx.tenant_schema, page, page_size,
        supplier_id=supplier_id, start=start_date, end=end_date,
    )
    return Page[PurchaseResponse](
        items=[PurchaseResponse.model_validate(p) for p in purchases],
        total=total, page=page, page_size=page_size,
    )


@router.get("/summary", response_model=PurchasesSummary)
async def purchases_summary(
    ctx: Managers,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return await purchases_repo.purchases_summary(executor, ctx.tenant_schema, start_date, end_date)


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(purchase_id: str, ctx: StockManagers, executor: Executor):
    purchase = await purchases_repo.get_purchase(executor, ctx.tenant_schema, purchase_id)
    return PurchaseResponse.model_validate(purchase)


@router.post("/{purchase_id}/payment", response_model=PurchaseResponse, dependencies=WRITE_ACCESS)
async def make_payment(purchase_id: str, body: PurchasePaymentRequest, ctx: Managers, executor: Executor):
    """Pay towards the outstanding balance of a purchase."""
    purchase = await purchases_repo.make_payment(
        executor, ctx.tenant_schema, purchase_id, body.amount, body.payment_method
    )
    return PurchaseResponse.model_validate(purchase)
