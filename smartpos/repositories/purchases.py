"""Purchase repository: goods received, supplier payable and payments."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import PaymentMethod, PurchaseStatus
from smartpos.core.exceptions import BusinessRuleError, NotFoundError, PaymentExceedsBalanceError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.product import Product
from smartpos.models.purchase import Purchase, PurchaseItem
from smartpos.models.supplier import Supplier
from smartpos.repositories import products as products_repo
from smartpos.repositories import suppliers as suppliers_repo
from smartpos.repositories.base import day_bounds, paginate, within
from smartpos.schemas.purchase import PurchaseCreate
from smartpos.services.pricing import ZERO, generate_invoice_number, inclusive_vat, money


logger = get_logger(__name__)


@dataclass
class PurchaseLineDraft:
    product_id: str
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal


@dataclass
class PurchaseDraft:
    supplier_id: str
    user_id: Optional[str]
    subtotal: Decimal
    vat_amount: Decimal
    total_cost: Decimal
    amount_paid: Decimal
    balance: Decimal
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    lines: List[PurchaseLineDraft] = field(default_factory=list)


async def prepare_purchase(
    executor: SchemaExecutor,
    schema: str,
    request: PurchaseCreate,
    user_id: Optional[str],
) -> PurchaseDraft:
    """Validate supplier and products and cost the purchase.

    Purchase VAT is the inclusive share of every line, whatever the
    product's VAT type.
    """
    await suppliers_repo.get_supplier(executor, schema, request.supplier_id)

    lines = []
    vat_amount = ZERO
    for item in request.items:
        await products_repo.get_product(executor, schema, item.product_id)
        line_total = money(item.quantity * item.unit_cost)
        vat_amount += inclusive_vat(line_total)
        lines.append(
            PurchaseLineDraft(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_cost=money(item.unit_cost),
                total_cost=line_total,
            )
        )

    subtotal = money(sum((line.total_cost for line in lines), ZERO))
    amount_paid = money(request.amount_paid)
    if amount_paid > subtotal:
        raise BusinessRuleError("Amount paid cannot exceed the purchase total")

    return PurchaseDraft(
        supplier_id=request.supplier_id,
        user_id=user_id,
        subtotal=subtotal,
        vat_amount=money(vat_amount),
        total_cost=subtotal,
        amount_paid=amount_paid,
        balance=subtotal - amount_paid,
        payment_method=request.payment_method,
        notes=request.notes,
        lines=lines,
    )


async def _load_purchase(session: AsyncSession, purchase_id: str) -> Purchase:
    result = await session.execute(
        select(Purchase).where(Purchase.id == purchase_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def create_purchase(executor: SchemaExecutor, schema: str, draft: PurchaseDraft) -> Purchase:
    """Record the purchase, restock, reprice at cost and book the payable."""
    async def record_purchase(session: AsyncSession) -> Purchase:
        purchase = Purchase(
            supplier_id=draft.supplier_id,
            user_id=draft.user_id,
            invoice_no=generate_invoice_number(),
            subtotal=draft.subtotal,
            vat_amount=draft.vat_amount,
            total_cost=draft.total_cost,
            amount_paid=draft.amount_paid,
            balance=draft.balance,
            payment_method=draft.payment_method,
            notes=draft.notes,
            status=PurchaseStatus.COMPLETED,
            items=[
                PurchaseItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_cost=line.unit_cost,
                    total_cost=line.total_cost,
                )
                for line in draft.lines
            ],
        )
        session.add(purchase)
        await session.flush()

        for line in draft.lines:
            # Last purchase cost wins
            result = await session.execute(
                update(Product)
                .where(Product.id == line.product_id)
                .values(
                    stock_quantity=Product.stock_quantity + line.quantity,
                    cost_price=line.unit_cost,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError(f"Product {line.product_id} not found")

        if draft.balance > 0:
            await session.execute(
                update(Supplier)
                .where(Supplier.id == draft.supplier_id)
                .values(balance=Supplier.balance + draft.balance)
                .execution_options(synchronize_session=False)
            )

        return await _load_purchase(session, purchase.id)

    purchase = await executor.run_transaction(schema, record_purchase)
    logger.info(
        f"Purchase recorded: {purchase.invoice_no} total={purchase.total_cost} balance={purchase.balance}",
        extra={"tenant_schema": schema, "user_id": draft.user_id},
    )
    return purchase


async def record_purchase(
    executor: SchemaExecutor,
    schema: str,
    request: PurchaseCreate,
    user_id: Optional[str],
) -> Purchase:
    draft = await prepare_purchase(executor, schema, request, user_id)
    return await create_purchase(executor, schema, draft)


async def make_payment(
    executor: SchemaExecutor,
    schema: str,
    purchase_id: str,
    amount: Decimal,
    payment_method: PaymentMethod,
) -> Purchase:
    """Pay down a purchase and the supplier balance together."""
    amount = money(amount)

    async def apply_payment(session: AsyncSession) -> Purchase:
        result = await session.execute(
            select(Purchase).where(Purchase.id == purchase_id).with_for_update()
        )
        purchase = result.scalar_one_or_none()
        if purchase is None:
            raise NotFoundError("Purchase not found")
        if amount > purchase.balance:
            raise PaymentExceedsBalanceError(
                f"Payment amount exceeds balance. Outstanding: {purchase.balance}"
            )

        purchase.amount_paid = purchase.amount_paid + amount
        purchase.balance = purchase.balance - amount
        purchase.payment_method = payment_method
        await session.execute(
            update(Supplier)
            .where(Supplier.id == purchase.supplier_id)
            .values(balance=Supplier.balance - amount)
            .execution_options(synchronize_session=False)
        )
        await session.flush()
        return await _load_purchase(session, purchase.id)

    purchase = await executor.run_transaction(schema, apply_payment)
    logger.info(
        f"Payment applied to {purchase.invoice_no}: {amount} via {payment_method}",
        extra={"tenant_schema": schema},
    )
    return purchase


async def get_purchase(executor: SchemaExecutor, schema: str, purchase_id: str) -> Purchase:
    result = await executor.query(schema, select(Purchase).where(Purchase.id == purchase_id))
    purchase = result.scalar_one_or_none()
    if purchase is None:
        raise NotFoundError("Purchase not found")
    return purchase


async def list_purchases(
    executor: SchemaExecutor,
    schema: str,
    page: int = 1,
    page_size: int = 20,
    supplier_id: Optional[str] = None,
    status: Optional[PurchaseStatus] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Tuple[Sequence[Purchase], int]:
    stmt = select(Purchase)
    if supplier_id:
        stmt = stmt.where(Purchase.supplier_id == supplier_id)
    if status is not None:
        stmt = stmt.where(Purchase.status == status)
    stmt = within(stmt, Purchase.created_at, *day_bounds(start, end))
    return await paginate(executor, schema, stmt.order_by(Purchase.created_at.desc()), page, page_size)


async def purchases_summary(
    executor: SchemaExecutor,
    schema: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> dict:
    stmt = within(
        select(
            func.count(Purchase.id).label("total_purchases"),
            func.coalesce(func.sum(Purchase.total_cost), 0).label("total_cost"),
            func.coalesce(func.sum(Purchase.amount_paid), 0).label("total_paid"),
            func.coalesce(func.sum(Purchase.balance), 0).label("total_outstanding"),
        ),
        Purchase.created_at,
        *day_bounds(start, end),
    )
    row = (await executor.query(schema, stmt)).mappings().one()
    return {
        "total_purchases": row["total_purchases"],
        "total_cost": money(row["total_cost"]),
        "total_paid": money(row["total_paid"]),
        "total_outstanding": money(row["total_outstanding"]),
    }
