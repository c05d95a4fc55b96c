"""Supplier repository. Balances move only through purchases and payments."""
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import RecordStatus
from smartpos.core.exceptions import NotFoundError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.purchase import Purchase
from smartpos.models.supplier import Supplier
from smartpos.repositories.base import build_update_values, day_bounds, paginate, within
from smartpos.services.pricing import money


logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "name", "contact_person", "phone", "email", "address",
    "payment_terms", "tax_pin", "status",
)


async def create_supplier(executor: SchemaExecutor, schema: str, data: dict) -> Supplier:
    async def insert_supplier(session: AsyncSession) -> Supplier:
        supplier = Supplier(**data, balance=Decimal("0"))
        session.add(supplier)
        await session.flush()
        return supplier

    supplier = await executor.run_transaction(schema, insert_supplier)
    logger.info(f"Supplier created: {supplier.id}", extra={"tenant_schema": schema})
    return supplier


async def get_supplier(executor: SchemaExecutor, schema: str, supplier_id: str) -> Supplier:
    result = await executor.query(schema, select(Supplier).where(Supplier.id == supplier_id))
    supplier = result.scalar_one_or_none()
    if supplier is None:
        raise NotFoundError("Supplier not found")
    return supplier


async def list_suppliers(
    executor: SchemaExecutor,
    schema: str,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
) -> Tuple[Sequence[Supplier], int]:
    stmt = select(Supplier).where(Supplier.status == RecordStatus.ACTIVE)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Supplier.name.ilike(pattern),
                Supplier.contact_person.ilike(pattern),
                Supplier.phone.ilike(pattern),
            )
        )
    return await paginate(executor, schema, stmt.order_by(Supplier.name), page, page_size)


async def update_supplier(executor: SchemaExecutor, schema: str, supplier_id: str, payload: dict) -> Supplier:
    values = build_update_values(payload, UPDATABLE_FIELDS)

    async def apply_update(session: AsyncSession) -> Supplier:
        supplier = await session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier not found")
        for field, value in values.items():
            setattr(supplier, field, value)
        await session.flush()
        return supplier

    return await executor.run_transaction(schema, apply_update)


async def delete_supplier(executor: SchemaExecutor, schema: str, supplier_id: str) -> None:
    result = await executor.query(
        schema,
        update(Supplier)
        .where(Supplier.id == supplier_id)
        .values(status=RecordStatus.INACTIVE)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount == 0:
        raise NotFoundError("Supplier not found")


async def suppliers_with_balance(executor: SchemaExecutor, schema: str) -> Sequence[Supplier]:
    result = await executor.query(
        schema,
        select(Supplier)
        .where(Supplier.status == RecordStatus.ACTIVE, Supplier.balance > 0)
        .order_by(Supplier.balance.desc()),
    )
    return result.scalars().all()


async def total_outstanding(executor: SchemaExecutor, schema: str) -> Decimal:
    result = await executor.query(
        schema,
        select(func.coalesce(func.sum(Supplier.balance), 0)).where(Supplier.status == RecordStatus.ACTIVE),
    )
    return money(result.scalar_one())


async def supplier_statement(
    executor: SchemaExecutor,
    schema: str,
    supplier_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> dict:
    """Purchases from one supplier in a date range, with totals."""
    supplier = await get_supplier(executor, schema, supplier_id)
    stmt = within(
        select(Purchase).where(Purchase.supplier_id == supplier_id),
        Purchase.created_at,
        *day_bounds(start, end),
    )
    purchases = (await executor.query(schema, stmt.order_by(Purchase.created_at))).scalars().all()
    return {
        "supplier": supplier,
        "purchases": purchases,
        "total_cost": sum((p.total_cost for p in purchases), Decimal("0")),
        "total_paid": sum((p.amount_paid for p in purchases), Decimal("0")),
        "balance": supplier.balance,
    }
