"""Tenant data isolation tests."""
from decimal import Decimal

import pytest
from httpx import AsyncClient

from smartpos.core.exceptions import NotFoundError
from smartpos.core.security import create_access_token
from smartpos.repositories import products as products_repo


@pytest.mark.asyncio
async def test_product_invisible_to_other_tenant(executor, schema, other_shop, product):
    other_schema = other_shop[0].tenant_schema
    assert other_schema != schema

    with pytest.raises(NotFoundError):
        await products_repo.get_product(executor, other_schema, product.id)

    rows, total = await products_repo.list_products(executor, other_schema)
    assert total == 0
    assert list(rows) == []


@pytest.mark.asyncio
async def test_same_barcode_allowed_in_each_tenant(executor, other_shop, product):
    other_schema = other_shop[0].tenant_schema
    twin = await products_repo.create_product(
        executor,
        other_schema,
        {
            "name": "Sugar 1kg",
            "barcode": product.barcode,
            "category": "Groceries",
            "cost_price": Decimal("90"),
            "selling_price": Decimal("110"),
        },
    )
    assert twin.barcode == product.barcode
    assert twin.selling_price == Decimal("110")


@pytest.mark.asyncio
async def test_api_cannot_reach_other_tenant_rows(client: AsyncClient, other_shop, product):
    _, other_admin = other_shop
    headers = {
        "Authorization": "Bearer "
        + create_access_token(other_admin.id, other_admin.tenant_id, other_admin.role.value)
    }

    response = await client.get(f"/api/v1/products/{product.id}", headers=headers)
    assert response.status_code == 404

    by_barcode = await client.get(f"/api/v1/products/barcode/{product.barcode}", headers=headers)
    assert by_barcode.status_code == 404

    listing = await client.get("/api/v1/products", headers=headers)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_token_with_foreign_tenant_rejected(client: AsyncClient, shop, other_shop):
    """A user id only resolves together with its own tenant."""
    admin = shop[1]
    other_tenant = other_shop[0]
    token = create_access_token(admin.id, other_tenant.id, "admin")

    response = await client.get("/api/v1/products", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sale_in_one_tenant_leaves_other_stock_alone(client: AsyncClient, executor, schema, other_shop, product, admin_headers):
    other_schema = other_shop[0].tenant_schema
    twin = await products_repo.create_product(
        executor,
        other_schema,
        {
            "name": "Sugar 1kg",
            "barcode": product.barcode,
            "category": "Groceries",
            "cost_price": Decimal("80"),
            "selling_price": Decimal("100"),
            "stock_quantity": Decimal("10"),
        },
    )

    sale = await client.post(
        "/api/v1/sales",
        headers=admin_headers,
        json={"items": [{"product_id": product.id, "quantity": "3"}], "payment_method": "cash"},
    )
    assert sale.status_code == 201

    assert (await products_repo.get_product(executor, schema, product.id)).stock_quantity == Decimal("7")
    assert (await products_repo.get_product(executor, other_schema, twin.id)).stock_quantity == Decimal("10")
