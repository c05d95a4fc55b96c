"""Sale checkout, void and reporting tests."""
from decimal import Decimal

import pytest

from smartpos.core.enums import PaymentMethod, SaleStatus, StockOperation
from smartpos.core.exceptions import (
    BusinessRuleError,
    InsufficientStockError,
    NotFoundError,
    SaleAlreadyVoidedError,
)
from smartpos.repositories import customers as customers_repo
from smartpos.repositories import products as products_repo
from smartpos.repositories import sales as sales_repo
from smartpos.schemas.sale import SaleCreate


def _request(*lines, **extra) -> SaleCreate:
    return SaleCreate(
        items=[{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines],
        payment_method=extra.pop("payment_method", PaymentMethod.CASH),
        **extra,
    )


async def _stock(executor, schema, product_id) -> Decimal:
    return (await products_repo.get_product(executor, schema, product_id)).stock_quantity


@pytest.mark.asyncio
async def test_sale_totals_and_vat(executor, schema, shop, product, zero_rated_product):
    """Two vatable at 100 plus one zero-rated at 50, 10 off, paid 300."""
    admin = shop[1]
    sale = await sales_repo.complete_sale(
        executor,
        schema,
        _request((product.id, 2), (zero_rated_product.id, 1), discount=Decimal("10"), amount_paid=Decimal("300")),
        admin.id,
    )

    assert sale.status == SaleStatus.COMPLETED
    assert sale.subtotal == Decimal("250.00")
    assert sale.vat_amount == Decimal("27.59")
    assert sale.discount == Decimal("10.00")
    assert sale.total_amount == Decimal("240.00")
    assert sale.change_amount == Decimal("60.00")
    assert sale.cashier_id == admin.id
    assert sale.receipt_no.startswith("RCP")
    assert {item.product_name for item in sale.items} == {"Sugar 1kg", "Milk 500ml"}
    vat_by_product = {item.product_id: item.vat_amount for item in sale.items}
    assert vat_by_product[zero_rated_product.id] == Decimal("0.00")


@pytest.mark.asyncio
async def test_amount_paid_defaults_to_total(executor, schema, product):
    sale = await sales_repo.complete_sale(executor, schema, _request((product.id, 1)), None)
    assert sale.amount_paid == sale.total_amount == Decimal("100.00")
    assert sale.change_amount == Decimal("0.00")


@pytest.mark.asyncio
async def test_sale_decrements_stock(executor, schema, product, zero_rated_product):
    await sales_repo.complete_sale(
        executor, schema, _request((product.id, 3), (zero_rated_product.id, 5)), None
    )

    assert await _stock(executor, schema, product.id) == Decimal("7")
    assert await _stock(executor, schema, zero_rated_product.id) == Decimal("0")


@pytest.mark.asyncio
async def test_insufficient_stock_rejected(executor, schema, product):
    with pytest.raises(InsufficientStockError):
        await sales_repo.complete_sale(executor, schema, _request((product.id, 11)), None)

    assert await _stock(executor, schema, product.id) == Decimal("10")


@pytest.mark.asyncio
async def test_failed_line_rolls_back_whole_sale(executor, schema, product, zero_rated_product):
    """Stock taken elsewhere after pricing makes the second decrement fail."""
    draft = await sales_repo.prepare_sale(
        executor, schema, _request((product.id, 3), (zero_rated_product.id, 2)), None
    )
    await products_repo.adjust_stock(
        executor, schema, zero_rated_product.id, Decimal("4"), StockOperation.SUBTRACT
    )

    with pytest.raises(InsufficientStockError):
        await sales_repo.create_sale(executor, schema, draft)

    assert await _stock(executor, schema, product.id) == Decimal("10")
    assert await _stock(executor, schema, zero_rated_product.id) == Decimal("1")
    sales, total = await sales_repo.list_sales(executor, schema)
    assert total == 0


@pytest.mark.asyncio
async def test_unknown_product_rejected(executor, schema):
    with pytest.raises(NotFoundError):
        await sales_repo.complete_sale(executor, schema, _request(("missing-product", 1)), None)


@pytest.mark.asyncio
async def test_unknown_customer_rejected(executor, schema, product):
    with pytest.raises(NotFoundError):
        await sales_repo.complete_sale(
            executor, schema, _request((product.id, 1), customer_id="missing-customer"), None
        )
    assert await _stock(executor, schema, product.id) == Decimal("10")


@pytest.mark.asyncio
async def test_discount_cannot_exceed_subtotal(executor, schema, product):
    with pytest.raises(BusinessRuleError):
        await sales_repo.complete_sale(
            executor, schema, _request((product.id, 1), discount=Decimal("150")), None
        )


@pytest.mark.asyncio
async def test_loyalty_points_awarded_to_customer(executor, schema, product):
    customer = await customers_repo.create_customer(
        executor, schema, {"name": "Jane Wanjiku", "phone": "0733000222"}
    )
    await sales_repo.complete_sale(
        executor, schema, _request((product.id, 3), customer_id=customer.id), None
    )

    customer = await customers_repo.get_customer(executor, schema, customer.id)
    assert customer.loyalty_points == 3

    history, total = await customers_repo.purchase_history(executor, schema, customer.id)
    assert total == 1


@pytest.mark.asyncio
async def test_failed_loyalty_award_is_raised(executor, schema, product, monkeypatch):
    customer = await customers_repo.create_customer(
        executor, schema, {"name": "Peter Otieno", "phone": "0733000333"}
    )

    async def customer_gone(executor, schema, customer_id, points):
        raise NotFoundError("Customer not found")

    monkeypatch.setattr(customers_repo, "award_loyalty_points", customer_gone)

    with pytest.raises(NotFoundError):
        await sales_repo.complete_sale(
            executor, schema, _request((product.id, 1), customer_id=customer.id), None
        )

    # The sale itself was committed before the award
    sales, total = await sales_repo.list_sales(executor, schema)
    assert total == 1
    assert await _stock(executor, schema, product.id) == Decimal("9")


@pytest.mark.asyncio
async def test_client_vat_type_ignored(executor, schema, product):
    request = SaleCreate(
        items=[{"product_id": product.id, "quantity": 1, "vat_type": "zero_rated"}],
        payment_method=PaymentMethod.CASH,
    )

    sale = await sales_repo.complete_sale(executor, schema, request, None)

    assert sale.vat_amount == Decimal("13.79")
    assert sale.items[0].vat_amount == Decimal("13.79")


@pytest.mark.asyncio
async def test_void_restores_stock(executor, schema, shop, product):
    admin = shop[1]
    sale = await sales_repo.complete_sale(executor, schema, _request((product.id, 4)), admin.id)
    assert await _stock(executor, schema, product.id) == Decimal("6")

    voided = await sales_repo.void_sale(executor, schema, sale.id, "Customer returned items", admin.id)

    assert voided.status == SaleStatus.VOIDED
    assert f"VOIDED: Customer returned items by user ID: {admin.id}" in voided.notes
    assert await _stock(executor, schema, product.id) == Decimal("10")


@pytest.mark.asyncio
async def test_void_twice_rejected(executor, schema, product):
    sale = await sales_repo.complete_sale(executor, schema, _request((product.id, 1)), None)
    await sales_repo.void_sale(executor, schema, sale.id, "Wrong item scanned", "manager-1")

    with pytest.raises(SaleAlreadyVoidedError):
        await sales_repo.void_sale(executor, schema, sale.id, "Wrong item scanned", "manager-1")
    assert await _stock(executor, schema, product.id) == Decimal("10")


@pytest.mark.asyncio
async def test_void_requires_reason(executor, schema, product):
    sale = await sales_repo.complete_sale(executor, schema, _request((product.id, 1)), None)
    with pytest.raises(BusinessRuleError):
        await sales_repo.void_sale(executor, schema, sale.id, " no ", "manager-1")


@pytest.mark.asyncio
async def test_reports_exclude_voided_sales(executor, schema, product, zero_rated_product):
    kept = await sales_repo.complete_sale(executor, schema, _request((product.id, 2)), None)
    voided = await sales_repo.complete_sale(
        executor, schema, _request((zero_rated_product.id, 1), payment_method=PaymentMethod.MPESA), None
    )
    await sales_repo.void_sale(executor, schema, voided.id, "Duplicate entry", "manager-1")

    summary = await sales_repo.today_summary(executor, schema)
    assert summary["total_transactions"] == 1
    assert summary["total_revenue"] == kept.total_amount
    assert summary["cash_sales"] == Decimal("200.00")
    assert summary["mpesa_sales"] == Decimal("0.00")

    top = await sales_repo.top_products(executor, schema)
    assert [row["product_id"] for row in top] == [product.id]

    methods = await sales_repo.payment_method_breakdown(executor, schema)
    assert [row["payment_method"] for row in methods] == [PaymentMethod.CASH]


@pytest.mark.asyncio
async def test_checkout_via_api(client, cashier_headers, executor, schema, product):
    response = await client.post(
        "/api/v1/sales",
        headers=cashier_headers,
        json={"items": [{"product_id": product.id, "quantity": "2"}], "payment_method": "cash"},
    )

    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["total_amount"]) == Decimal("200")
    assert Decimal(data["vat_amount"]) == Decimal("27.59")
    assert len(data["items"]) == 1

    receipt = await client.get(f"/api/v1/sales/receipt/{data['receipt_no']}", headers=cashier_headers)
    assert receipt.status_code == 200
    assert receipt.json()["id"] == data["id"]


@pytest.mark.asyncio
async def test_insufficient_stock_via_api(client, cashier_headers, product):
    response = await client.post(
        "/api/v1/sales",
        headers=cashier_headers,
        json={"items": [{"product_id": product.id, "quantity": "50"}], "payment_method": "cash"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INSUFFICIENT_STOCK"


@pytest.mark.asyncio
async def test_only_managers_void(client, cashier_headers, admin_headers, product):
    created = await client.post(
        "/api/v1/sales",
        headers=cashier_headers,
        json={"items": [{"product_id": product.id, "quantity": "1"}], "payment_method": "cash"},
    )
    sale_id = created.json()["id"]

    denied = await client.post(
        f"/api/v1/sales/{sale_id}/void", headers=cashier_headers, json={"reason": "Customer changed mind"}
    )
    assert denied.status_code == 403

    allowed = await client.post(
        f"/api/v1/sales/{sale_id}/void", headers=admin_headers, json={"reason": "Customer changed mind"}
    )
    assert allowed.status_code == 200
    assert allowed.json()["status"] == "voided"
