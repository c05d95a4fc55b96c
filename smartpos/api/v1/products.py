"""Product API endpoints."""
from typing import List, Optional
from fastapi import APIRouter, Query, status

from smartpos.core.dependencies import Executor, Managers, StockManagers, TenantCtx, WRITE_ACCESS
from smartpos.repositories import products as products_repo
from smartpos.schemas.common import Page
from smartpos.schemas.product import (
    CategoryCount, ProductCreate, ProductResponse, ProductUpdate, StockAdjustment,
)


router = APIRouter()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_product(body: ProductCreate, ctx: StockManagers, executor: Executor):
    product = await products_repo.create_product(executor, ctx.tenant_schema, body.model_dump())
    return ProductResponse.model_validate(product)


@router.get("", response_model=Page[ProductResponse])
async def list_products(
    ctx: TenantCtx,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    category: Optional[str] = None,
    low_stock: bool = False,
):
    products, total = await products_repo.list_products(
        executor, ctx.tenant_schema, page, page_size, category=category, low_stock=low_stock
    )
    return Page[ProductResponse](
        items=[ProductResponse.model_validate(p) for p in products],
        total=total, page=page, page_size=page_size,
    )


@router.get("/search", response_model=Page[ProductResponse])
async def search_products(
    ctx: TenantCtx,
    executor: Executor,
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
):
    products, total = await products_repo.search_products(executor, ctx.tenant_schema, q, page, page_size)
    return Page[ProductResponse](
        items=[ProductResponse.model_validate(p) for p in products],
        total=total, page=page, page_size=page_size,
    )


@router.get("/low-stock", response_model=List[ProductResponse])
async def low_stock(ctx: TenantCtx, executor: Executor):
    """Products at or below their reorder level."""
    products = await products_repo.get_low_stock(executor, ctx.tenant_schema)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/categories", response_model=List[CategoryCount])
async def categories(ctx: TenantCtx, executor: Executor):
    return await products_repo.get_categories(executor, ctx.tenant_schema)


@router.get("/barcode/{barcode}", response_model=ProductResponse)
async def get_by_barcode(barcode: str, ctx: TenantCtx, executor: Executor):
    product = await products_repo.get_product_by_barcode(executor, ctx.tenant_schema, barcode)
    return ProductResponse.model_validate(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, ctx: TenantCtx, executor: Executor):
    product = await products_repo.get_product(executor, ctx.tenant_schema, product_id)
    return ProductResponse.model_validate(product)


@router.put("/{product_id}", response_model=ProductResponse, dependencies=WRITE_ACCESS)
async def update_product(product_id: str, body: ProductUpdate, ctx: StockManagers, executor: Executor):
    product = await products_repo.update_product(
        executor, ctx.tenant_schema, product_id, body.model_dump(exclude_unset=True)
    )
    return ProductResponse.model_validate(product)


@router.post("/{product_id}/stock", response_model=ProductResponse, dependencies=WRITE_ACCESS)
async def adjust_stock(product_id: str, body: StockAdjustment, ctx: StockManagers, executor: Executor):
    product = await products_repo.adjust_stock(
        executor, ctx.tenant_schema, product_id, body.quantity, body.operation
    )
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=WRITE_ACCESS)
async def delete_product(product_id: str, ctx: Managers, executor: Executor):
    await products_repo.delete_product(executor, ctx.tenant_schema, product_id)
