"""Customer API endpoints."""
from typing import Optional
from fastapi import APIRouter, Query, status

from smartpos.core.dependencies import Executor, TenantCtx, WRITE_ACCESS
from smartpos.repositories import customers as customers_repo
from smartpos.schemas.common import Page
from smartpos.schemas.customer import (
    CustomerCreate, CustomerResponse, CustomerUpdate, LoyaltyRedemption,
)
from smartpos.schemas.sale import SaleResponse


router = APIRouter()


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_customer(body: CustomerCreate, ctx: TenantCtx, executor: Executor):
    customer = await customers_repo.create_customer(executor, ctx.tenant_schema, body.model_dump())
    return CustomerResponse.model_validate(customer)


@router.get("", response_model=Page[CustomerResponse])
async def list_customers(
    ctx: TenantCtx,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    search: Optional[str] = None,
):
    customers, total = await customers_repo.list_customers(
        executor, ctx.tenant_schema, page, page_size, search=search
    )
    return Page[CustomerResponse](
        items=[CustomerResponse.model_validate(c) for c in customers],
        total=total, page=page, page_size=page_size,
    )


@router.get("/search", response_model=Page[CustomerResponse])
async def search_customers(
    ctx: TenantCtx,
    executor: Executor,
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
):
    """Match on name, phone or email."""
    customers, total = await customers_repo.list_customers(
        executor, ctx.tenant_schema, page, page_size, search=q
    )
    return Page[CustomerResponse](
        items=[CustomerResponse.model_validate(c) for c in customers],
        total=total, page=page, page_size=page_size,
    )


@router.get("/phone/{phone}", response_model=CustomerResponse)
async def get_customer_by_phone(phone: str, ctx: TenantCtx, executor: Executor):
    customer = await customers_repo.get_customer_by_phone(executor, ctx.tenant_schema, phone)
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: str, ctx: TenantCtx, executor: Executor):
    customer = await customers_repo.get_customer(executor, ctx.tenant_schema, customer_id)
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}/purchases", response_model=Page[SaleResponse])
async def customer_purchases(
    customer_id: str,
    ctx: TenantCtx,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
):
    sales, total = await customers_repo.purchase_history(
        executor, ctx.tenant_schema, customer_id, page, page_size
    )
    return Page[SaleResponse](
        items=[SaleResponse.model_validate(s) for s in sales],
        total=total, page=page, page_size=page_size,
    )


@router.put("/{customer_id}", response_model=CustomerResponse, dependencies=WRITE_ACCESS)
async def update_customer(customer_id: str, body: CustomerUpdate, ctx: TenantCtx, executor: Executor):
    customer = await customers_repo.update_customer(
        executor, ctx.tenant_schema, customer_id, body.model_dump(exclude_unset=True)
    )
    return CustomerResponse.model_validate(customer)


@router.post("/{customer_id}/redeem", response_model=CustomerResponse, dependencies=WRITE_ACCESS)
async def redeem_points(customer_id: str, body: LoyaltyRedemption, ctx: TenantCtx, executor: Executor):
    customer = await customers_repo.redeem_loyalty_points(
        executor, ctx.tenant_schema, customer_id, body.points
    )
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=WRITE_ACCESS)
async def delete_customer(customer_id: str, ctx: TenantCtx, executor: Executor):
    await customers_repo.delete_customer(executor, ctx.tenant_schema, customer_id)
