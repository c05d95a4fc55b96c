"""Purchases and supplier ledger tests."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from smartpos.core.enums import PaymentMethod
from smartpos.core.exceptions import (
    BusinessRuleError,
    ConstraintViolationError,
    NotFoundError,
    PaymentExceedsBalanceError,
)
from smartpos.repositories import products as products_repo
from smartpos.repositories import purchases as purchases_repo
from smartpos.repositories import suppliers as suppliers_repo
from smartpos.schemas.purchase import PurchaseCreate


@pytest.fixture
def supplier_data():
    return {"name": "Wholesale Distributors Ltd", "phone": "0722000111", "payment_terms": "30 days"}


async def _receive(executor, schema, supplier_id, product_id, quantity, unit_cost, paid):
    return await purchases_repo.record_purchase(
        executor,
        schema,
        PurchaseCreate(
            supplier_id=supplier_id,
            items=[{"product_id": product_id, "quantity": quantity, "unit_cost": unit_cost}],
            amount_paid=paid,
            payment_method=PaymentMethod.CASH,
        ),
        None,
    )


async def _balance(executor, schema, supplier_id) -> Decimal:
    return (await suppliers_repo.get_supplier(executor, schema, supplier_id)).balance


@pytest.mark.asyncio
async def test_new_supplier_starts_at_zero(executor, schema, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    assert supplier.balance == Decimal("0")


@pytest.mark.asyncio
async def test_purchase_restocks_and_books_payable(executor, schema, product, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)

    purchase = await _receive(executor, schema, supplier.id, product.id, 10, Decimal("85"), Decimal("300"))

    assert purchase.total_cost == Decimal("850.00")
    assert purchase.vat_amount == Decimal("117.24")
    assert purchase.amount_paid == Decimal("300.00")
    assert purchase.balance == Decimal("550.00")
    assert purchase.invoice_no.startswith("INV")
    assert len(purchase.items) == 1

    restocked = await products_repo.get_product(executor, schema, product.id)
    assert restocked.stock_quantity == Decimal("20")
    assert restocked.cost_price == Decimal("85.00")
    assert await _balance(executor, schema, supplier.id) == Decimal("550.00")


@pytest.mark.asyncio
async def test_fully_paid_purchase_leaves_no_balance(executor, schema, product, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    await _receive(executor, schema, supplier.id, product.id, 2, Decimal("80"), Decimal("160"))
    assert await _balance(executor, schema, supplier.id) == Decimal("0.00")


@pytest.mark.asyncio
async def test_overpaid_purchase_rejected(executor, schema, product, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    with pytest.raises(BusinessRuleError):
        await _receive(executor, schema, supplier.id, product.id, 1, Decimal("80"), Decimal("100"))
    assert (await products_repo.get_product(executor, schema, product.id)).stock_quantity == Decimal("10")


@pytest.mark.asyncio
async def test_unknown_supplier_rejected(executor, schema, product):
    with pytest.raises(NotFoundError):
        await _receive(executor, schema, "missing-supplier", product.id, 1, Decimal("80"), Decimal("0"))


@pytest.mark.asyncio
async def test_failed_line_rolls_back_whole_purchase(executor, schema, product, supplier_data):
    """A product removed after costing must undo the earlier restock and the payable."""
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    draft = purchases_repo.PurchaseDraft(
        supplier_id=supplier.id,
        user_id=None,
        subtotal=Decimal("160.00"),
        vat_amount=Decimal("22.07"),
        total_cost=Decimal("160.00"),
        amount_paid=Decimal("0.00"),
        balance=Decimal("160.00"),
        payment_method=PaymentMethod.CASH,
        lines=[
            purchases_repo.PurchaseLineDraft(
                product_id=product.id, quantity=Decimal("1"), unit_cost=Decimal("80.00"), total_cost=Decimal("80.00")
            ),
            purchases_repo.PurchaseLineDraft(
                product_id="missing-product", quantity=Decimal("1"), unit_cost=Decimal("80.00"), total_cost=Decimal("80.00")
            ),
        ],
    )

    with pytest.raises((NotFoundError, ConstraintViolationError)):
        await purchases_repo.create_purchase(executor, schema, draft)

    assert (await products_repo.get_product(executor, schema, product.id)).stock_quantity == Decimal("10")
    assert await _balance(executor, schema, supplier.id) == Decimal("0.00")
    summary = await purchases_repo.purchases_summary(executor, schema)
    assert summary["total_purchases"] == 0


@pytest.mark.asyncio
async def test_payments_reduce_purchase_and_supplier_together(executor, schema, product, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    purchase = await _receive(executor, schema, supplier.id, product.id, 10, Decimal("80"), Decimal("0"))

    paid = await purchases_repo.make_payment(
        executor, schema, purchase.id, Decimal("300"), PaymentMethod.MPESA
    )

    assert paid.amount_paid == Decimal("300.00")
    assert paid.balance == Decimal("500.00")
    assert paid.payment_method == PaymentMethod.MPESA
    assert await _balance(executor, schema, supplier.id) == Decimal("500.00")


@pytest.mark.asyncio
async def test_payment_above_balance_rejected(executor, schema, product, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    purchase = await _receive(executor, schema, supplier.id, product.id, 5, Decimal("80"), Decimal("100"))

    with pytest.raises(PaymentExceedsBalanceError):
        await purchases_repo.make_payment(executor, schema, purchase.id, Decimal("301"), PaymentMethod.CASH)

    reloaded = await purchases_repo.get_purchase(executor, schema, purchase.id)
    assert reloaded.balance == Decimal("300.00")
    assert await _balance(executor, schema, supplier.id) == Decimal("300.00")


@pytest.mark.asyncio
async def test_supplier_statement_and_summary(executor, schema, product, supplier_data):
    supplier = await suppliers_repo.create_supplier(executor, schema, supplier_data)
    await _receive(executor, schema, supplier.id, product.id, 10, Decimal("80"), Decimal("800"))
    await _receive(executor, schema, supplier.id, product.id, 5, Decimal("80"), Decimal("100"))

    today = datetime.now(timezone.utc).date()
    statement = await suppliers_repo.supplier_statement(executor, schema, supplier.id, today, today)
    assert len(statement["purchases"]) == 2
    assert statement["total_cost"] == Decimal("1200.00")
    assert statement["total_paid"] == Decimal("900.00")
    assert statement["balance"] == Decimal("300.00")

    owing = await suppliers_repo.suppliers_with_balance(executor, schema)
    assert [s.id for s in owing] == [supplier.id]
    assert await suppliers_repo.total_outstanding(executor, schema) == Decimal("300.00")

    summary = await purchases_repo.purchases_summary(executor, schema)
    assert summary["total_purchases"] == 2
    assert summary["total_outstanding"] == Decimal("300.00")


@pytest.mark.asyncio
async def test_purchase_roles_via_api(client, admin_headers, cashier_headers, product):
    supplier = await client.post(
        "/api/v1/suppliers",
        headers=admin_headers,
        json={"name": "Fresh Farms", "phone": "0711222333"},
    )
    assert supplier.status_code == 201
    supplier_id = supplier.json()["id"]

    body = {
        "supplier_id": supplier_id,
        "items": [{"product_id": product.id, "quantity": "4", "unit_cost": "75"}],
        "amount_paid": "100",
    }
    denied = await client.post("/api/v1/purchases", headers=cashier_headers, json=body)
    assert denied.status_code == 403

    created = await client.post("/api/v1/purchases", headers=admin_headers, json=body)
    assert created.status_code == 201
    purchase = created.json()
    assert Decimal(purchase["balance"]) == Decimal("200")

    payment = await client.post(
        f"/api/v1/purchases/{purchase['id']}/payment",
        headers=admin_headers,
        json={"amount": "250", "payment_method": "cash"},
    )
    assert payment.status_code == 400
    assert payment.json()["code"] == "PAYMENT_EXCEEDS_BALANCE"
