"""Supplier API endpoints."""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from smartpos.core.dependencies import Executor, Managers, StockManagers, WRITE_ACCESS
from smartpos.repositories import suppliers as suppliers_repo
from smartpos.schemas.common import Page
from smartpos.schemas.purchase import PurchaseResponse
from smartpos.schemas.supplier import SupplierCreate, SupplierResponse, SupplierUpdate


router = APIRouter()


class SupplierStatement(BaseModel):
    supplier: SupplierResponse
    purchases: List[PurchaseResponse]
    total_cost: Decimal
    total_paid: Decimal
    balance: Decimal


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_supplier(body: SupplierCreate, ctx: StockManagers, executor: Executor):
    supplier = await suppliers_repo.create_supplier(executor, ctx.tenant_schema, body.model_dump())
    return SupplierResponse.model_validate(supplier)


@router.get("", response_model=Page[SupplierResponse])
async def list_suppliers(
    ctx: StockManagers,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    search: Optional[str] = None,
):
    suppliers, total = await suppliers_repo.list_suppliers(
        executor, ctx.tenant_schema, page, page_size, search=search
    )
    return Page[SupplierResponse](
        items=[SupplierResponse.model_validate(s) for s in suppliers],
        total=total, page=page, page_size=page_size,
    )


@router.get("/with-balance", response_model=List[SupplierResponse])
async def suppliers_with_balance(ctx: Managers, executor: Executor):
    """Suppliers we still owe money."""
    suppliers = await suppliers_repo.suppliers_with_balance(executor, ctx.tenant_schema)
    return [SupplierResponse.model_validate(s) for s in suppliers]


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(supplier_id: str, ctx: StockManagers, executor: Executor):
    supplier = await suppliers_repo.get_supplier(executor, ctx.tenant_schema, supplier_id)
    return SupplierResponse.model_validate(supplier)


@router.get("/{supplier_id}/statement", response_model=SupplierStatement)
async def supplier_statement(
    supplier_id: str,
    ctx: Managers,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    statement = await suppliers_repo.supplier_statement(
        executor, ctx.tenant_schema, supplier_id, start_date, end_date
    )
    return SupplierStatement(
        supplier=SupplierResponse.model_validate(statement["supplier"]),
        purchases=[PurchaseResponse.model_validate(p) for p in statement["purchases"]],
        total_cost=statement["total_cost"],
        total_paid=statement["total_paid"],
        balance=statement["balance"],
    )


@router.put("/{supplier_id}", response_model=SupplierResponse, dependencies=WRITE_ACCESS)
async def update_supplier(supplier_id: str, body: SupplierUpdate, ctx: StockManagers, executor: Executor):
    supplier = await suppliers_repo.update_supplier(
        executor, ctx.tenant_schema, supplier_id, body.model_dump(exclude_unset=True)
    )
    return SupplierResponse.model_validate(supplier)


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=WRITE_ACCESS)
async def delete_supplier(supplier_id: str, ctx: Managers, executor: Executor):
    await suppliers_repo.delete_supplier(executor, ctx.tenant_schema, supplier_id)
