"""Sale repository: checkout, void and sales reporting.

A sale is written in one transaction: the sale row, its lines and one guarded
stock decrement per line. The decrement only matches while enough stock is
left, so two tills selling the last unit cannot both succeed.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import PaymentMethod, SaleStatus
from smartpos.core.exceptions import (
    BusinessRuleError,
    InsufficientStockError,
    NotFoundError,
    SaleAlreadyVoidedError,
)
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.product import Product
from smartpos.models.sale import Sale, SaleItem
from smartpos.models.user import User
from smartpos.repositories import customers as customers_repo
from smartpos.repositories import products as products_repo
from smartpos.repositories.base import day_bounds, paginate, within
from smartpos.schemas.sale import SaleCreate
from smartpos.services.pricing import (
    ZERO,
    generate_receipt_number,
    line_vat,
    loyalty_points_for,
    money,
)


logger = get_logger(__name__)

MIN_VOID_REASON = 5


@dataclass
class SaleLineDraft:
    product_id: str
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    vat_amount: Decimal


@dataclass
class SaleDraft:
    """Priced sale, ready to be written."""
    cashier_id: Optional[str]
    customer_id: Optional[str]
    payment_method: PaymentMethod
    subtotal: Decimal
    vat_amount: Decimal
    discount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    change_amount: Decimal
    mpesa_code: Optional[str] = None
    notes: Optional[str] = None
    lines: List[SaleLineDraft] = field(default_factory=list)


async def prepare_sale(
    executor: SchemaExecutor,
    schema: str,
    request: SaleCreate,
    cashier_id: Optional[str],
) -> SaleDraft:
    """Validate a sale request against current products and price it.

    Unit price and VAT type always come from the product row; a VAT type
    sent by the client is ignored.
    """
    lines = []
    for item in request.items:
        product = await products_repo.get_product(executor, schema, item.product_id)
        if product.stock_quantity < item.quantity:
            logger.warning(
                f"Insufficient stock for {product.id}: have {product.stock_quantity}, want {item.quantity}",
                extra={"tenant_schema": schema},
            )
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}. Available: {product.stock_quantity}"
            )
        subtotal = money(item.quantity * product.selling_price)
        lines.append(
            SaleLineDraft(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                unit_price=product.selling_price,
                subtotal=subtotal,
                vat_amount=line_vat(subtotal, product.vat_type),
            )
        )

    if request.customer_id:
        await customers_repo.get_customer(executor, schema, request.customer_id)

    subtotal = money(sum((line.subtotal for line in lines), ZERO))
    vat_amount = money(sum((line.vat_amount for line in lines), ZERO))
    discount = money(request.discount)
    if discount > subtotal:
        raise BusinessRuleError("Discount cannot exceed the sale subtotal")

    total = subtotal - discount
    amount_paid = money(request.amount_paid) if request.amount_paid is not None else total
    return SaleDraft(
        cashier_id=cashier_id,
        customer_id=request.customer_id or None,
        payment_method=request.payment_method,
        subtotal=subtotal,
        vat_amount=vat_amount,
        discount=discount,
        total_amount=total,
        amount_paid=amount_paid,
        change_amount=max(ZERO, amount_paid - total),
        mpesa_code=request.mpesa_code,
        notes=request.notes,
        lines=lines,
    )


async def _load_sale(session: AsyncSession, sale_id: str) -> Sale:
    result = await session.execute(
        select(Sale).where(Sale.id == sale_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def create_sale(executor: SchemaExecutor, schema: str, draft: SaleDraft) -> Sale:
    """Write the sale, its lines and the stock decrements atomically."""
    async def record_sale(session: AsyncSession) -> Sale:
        sale = Sale(
            receipt_no=generate_receipt_number(),
            cashier_id=draft.cashier_id,
            customer_id=draft.customer_id,
            subtotal=draft.subtotal,
            vat_amount=draft.vat_amount,
            discount=draft.discount,
            total_amount=draft.total_amount,
            payment_method=draft.payment_method,
            amount_paid=draft.amount_paid,
            change_amount=draft.change_amount,
            mpesa_code=draft.mpesa_code,
            notes=draft.notes,
            status=SaleStatus.COMPLETED,
            items=[
                SaleItem(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                    vat_amount=line.vat_amount,
                    total=line.subtotal,
                    discount=ZERO,
                )
                for line in draft.lines
            ],
        )
        session.add(sale)
        await session.flush()

        for line in draft.lines:
            result = await session.execute(
                update(Product)
                .where(
                    Product.id == line.product_id,
                    Product.stock_quantity >= line.quantity,
                )
                .values(stock_quantity=Product.stock_quantity - line.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InsufficientStockError(f"Insufficient stock for {line.product_name}")

        return await _load_sale(session, sale.id)

    sale = await executor.run_transaction(schema, record_sale)
    logger.info(
        f"Sale created: {sale.receipt_no} total={sale.total_amount} items={len(sale.items)}",
        extra={"tenant_schema": schema, "user_id": draft.cashier_id},
    )
    return sale


async def complete_sale(
    executor: SchemaExecutor,
    schema: str,
    request: SaleCreate,
    cashier_id: Optional[str],
) -> Sale:
    """Checkout: price, write, then award loyalty points to the customer."""
    draft = await prepare_sale(executor, schema, request, cashier_id)
    sale = await create_sale(executor, schema, draft)

    if sale.customer_id:
        points = loyalty_points_for(sale.total_amount)
        await customers_repo.award_loyalty_points(executor, schema, sale.customer_id, points)
    return sale


async def void_sale(
    executor: SchemaExecutor,
    schema: str,
    sale_id: str,
    reason: str,
    user_id: str,
) -> Sale:
    """Reverse a completed sale and put its stock back."""
    reason = (reason or "").strip()
    if len(reason) < MIN_VOID_REASON:
        raise BusinessRuleError(f"Void reason must be at least {MIN_VOID_REASON} characters")

    async def reverse_sale(session: AsyncSession) -> Sale:
        result = await session.execute(
            select(Sale).where(Sale.id == sale_id).with_for_update()
        )
        sale = result.scalar_one_or_none()
        if sale is None:
            raise NotFoundError("Sale not found")
        if sale.status == SaleStatus.VOIDED:
            raise SaleAlreadyVoidedError("Sale has already been voided")

        for item in sale.items:
            await session.execute(
                update(Product)
                .where(Product.id == item.product_id)
                .values(stock_quantity=Product.stock_quantity + item.quantity)
                .execution_options(synchronize_session=False)
            )

        sale.status = SaleStatus.VOIDED
        sale.notes = f"{sale.notes or ''} | VOIDED: {reason} by user ID: {user_id}"
        await session.flush()
        return await _load_sale(session, sale.id)

    sale = await executor.run_transaction(schema, reverse_sale)
    logger.info(
        f"Sale voided: {sale.receipt_no}",
        extra={"tenant_schema": schema, "user_id": user_id},
    )
    return sale


async def get_sale(executor: SchemaExecutor, schema: str, sale_id: str) -> Sale:
    result = await executor.query(schema, select(Sale).where(Sale.id == sale_id))
    sale = result.scalar_one_or_none()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


async def get_sale_by_receipt(executor: SchemaExecutor, schema: str, receipt_no: str) -> Sale:
    result = await executor.query(schema, select(Sale).where(Sale.receipt_no == receipt_no))
    sale = result.scalar_one_or_none()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


async def list_sales(
    executor: SchemaExecutor,
    schema: str,
    page: int = 1,
    page_size: int = 20,
    cashier_id: Optional[str] = None,
    payment_method: Optional[PaymentMethod] = None,
    status: Optional[SaleStatus] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Tuple[Sequence[Sale], int]:
    stmt = select(Sale)
    if cashier_id:
        stmt = stmt.where(Sale.cashier_id == cashier_id)
    if payment_method is not None:
        stmt = stmt.where(Sale.payment_method == payment_method)
    if status is not None:
        stmt = stmt.where(Sale.status == status)
    stmt = within(stmt, Sale.created_at, *day_bounds(start, end))
    return await paginate(executor, schema, stmt.order_by(Sale.created_at.desc()), page, page_size)


def _revenue_for(method: PaymentMethod):
    return func.coalesce(
        func.sum(case((Sale.payment_method == method, Sale.total_amount), else_=0)), 0
    )


async def today_summary(executor: SchemaExecutor, schema: str) -> dict:
    """Completed sales since midnight UTC."""
    midnight = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    stmt = within(
        select(
            func.count(Sale.id).label("total_transactions"),
            func.coalesce(func.sum(Sale.total_amount), 0).label("total_revenue"),
            _revenue_for(PaymentMethod.CASH).label("cash_sales"),
            _revenue_for(PaymentMethod.MPESA).label("mpesa_sales"),
            _revenue_for(PaymentMethod.CARD).label("card_sales"),
            func.coalesce(func.sum(Sale.vat_amount), 0).label("total_vat"),
        ).where(Sale.status == SaleStatus.COMPLETED),
        Sale.created_at,
        midnight,
        midnight + timedelta(days=1),
    )
    row = (await executor.query(schema, stmt)).mappings().one()
    return {
        "total_transactions": row["total_transactions"],
        "total_revenue": money(row["total_revenue"]),
        "cash_sales": money(row["cash_sales"]),
        "mpesa_sales": money(row["mpesa_sales"]),
        "card_sales": money(row["card_sales"]),
        "total_vat": money(row["total_vat"]),
    }


async def daily_report(
    executor: SchemaExecutor,
    schema: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[dict]:
    sale_date = func.date(Sale.created_at)
    stmt = within(
        select(
            sale_date.label("sale_date"),
            func.count(Sale.id).label("transactions"),
            func.coalesce(func.sum(Sale.total_amount), 0).label("revenue"),
            func.coalesce(func.sum(Sale.vat_amount), 0).label("vat"),
            func.coalesce(func.sum(Sale.discount), 0).label("discounts"),
        ).where(Sale.status == SaleStatus.COMPLETED),
        Sale.created_at,
        *day_bounds(start, end),
    ).group_by(sale_date).order_by(sale_date)
    rows = (await executor.query(schema, stmt)).mappings().all()
    return [
        {
            "sale_date": row["sale_date"],
            "transactions": row["transactions"],
            "revenue": money(row["revenue"]),
            "vat": money(row["vat"]),
            "discounts": money(row["discounts"]),
        }
        for row in rows
    ]


async def top_products(
    executor: SchemaExecutor,
    schema: str,
    limit: int = 10,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[dict]:
    quantity_sold = func.sum(SaleItem.quantity)
    stmt = within(
        select(
            SaleItem.product_id,
            SaleItem.product_name,
            quantity_sold.label("quantity_sold"),
            func.sum(SaleItem.total).label("revenue"),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .where(Sale.status == SaleStatus.COMPLETED),
        Sale.created_at,
        *day_bounds(start, end),
    ).group_by(SaleItem.product_id, SaleItem.product_name).order_by(quantity_sold.desc()).limit(limit)
    rows = (await executor.query(schema, stmt)).mappings().all()
    return [
        {
            "product_id": row["product_id"],
            "product_name": row["product_name"],
            "quantity_sold": money(row["quantity_sold"]),
            "revenue": money(row["revenue"]),
        }
        for row in rows
    ]


async def cashier_performance(
    executor: SchemaExecutor,
    schema: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[dict]:
    revenue = func.coalesce(func.sum(Sale.total_amount), 0)
    stmt = within(
        select(
            Sale.cashier_id,
            User.full_name.label("cashier_name"),
            func.count(Sale.id).label("transactions"),
            revenue.label("revenue"),
        )
        .outerjoin(User, User.id == Sale.cashier_id)
        .where(Sale.status == SaleStatus.COMPLETED),
        Sale.created_at,
        *day_bounds(start, end),
    ).group_by(Sale.cashier_id, User.full_name).order_by(revenue.desc())
    rows = (await executor.query(schema, stmt)).mappings().all()
    return [
        {
            "cashier_id": row["cashier_id"],
            "cashier_name": row["cashier_name"],
            "transactions": row["transactions"],
            "revenue": money(row["revenue"]),
        }
        for row in rows
    ]


async def payment_method_breakdown(
    executor: SchemaExecutor,
    schema: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[dict]:
    revenue = func.coalesce(func.sum(Sale.total_amount), 0)
    stmt = within(
        select(
            Sale.payment_method,
            func.count(Sale.id).label("transactions"),
            revenue.label("revenue"),
        ).where(Sale.status == SaleStatus.COMPLETED),
        Sale.created_at,
        *day_bounds(start, end),
    ).group_by(Sale.payment_method).order_by(revenue.desc())
    rows = (await executor.query(schema, stmt)).mappings().all()
    return [
        {
            "payment_method": row["payment_method"],
            "transactions": row["transactions"],
            "revenue": money(row["revenue"]),
        }
        for row in rows
    ]
