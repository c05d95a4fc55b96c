"""Customer repository and loyalty points."""
from typing import Optional, Sequence, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import RecordStatus
from smartpos.core.exceptions import BusinessRuleError, ConstraintViolationError, NotFoundError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.customer import Customer
from smartpos.models.sale import Sale
from smartpos.repositories.base import build_update_values, paginate


logger = get_logger(__name__)

UPDATABLE_FIELDS = ("name", "phone", "email", "address", "status")


async def _phone_taken(session: AsyncSession, phone: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Customer.id).where(Customer.phone == phone)
    if exclude_id is not None:
        stmt = stmt.where(Customer.id != exclude_id)
    return (await session.scalar(stmt)) is not None


async def create_customer(executor: SchemaExecutor, schema: str, data: dict) -> Customer:
    async def insert_customer(session: AsyncSession) -> Customer:
        if await _phone_taken(session, data["phone"]):
            raise ConstraintViolationError("Customer with this phone number already exists")
        customer = Customer(**data)
        session.add(customer)
        await session.flush()
        return customer

    customer = await executor.run_transaction(schema, insert_customer)
    logger.info(f"Customer created: {customer.id}", extra={"tenant_schema": schema})
    return customer


async def get_customer(executor: SchemaExecutor, schema: str, customer_id: str) -> Customer:
    result = await executor.query(schema, select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


async def get_customer_by_phone(executor: SchemaExecutor, schema: str, phone: str) -> Customer:
    result = await executor.query(schema, select(Customer).where(Customer.phone == phone))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


async def list_customers(
    executor: SchemaExecutor,
    schema: str,
    page: int = 1,
    page_size: int = 20,
    search: Optional[str] = None,
) -> Tuple[Sequence[Customer], int]:
    stmt = select(Customer).where(Customer.status == RecordStatus.ACTIVE)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Customer.name.ilike(pattern),
                Customer.phone.ilike(pattern),
                Customer.email.ilike(pattern),
            )
        )
    return await paginate(executor, schema, stmt.order_by(Customer.name), page, page_size)


async def update_customer(executor: SchemaExecutor, schema: str, customer_id: str, payload: dict) -> Customer:
    values = build_update_values(payload, UPDATABLE_FIELDS)

    async def apply_update(session: AsyncSession) -> Customer:
        customer = await session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        if "phone" in values and await _phone_taken(session, values["phone"], customer_id):
            raise ConstraintViolationError("Customer with this phone number already exists")
        for field, value in values.items():
            setattr(customer, field, value)
        await session.flush()
        return customer

    return await executor.run_transaction(schema, apply_update)


async def delete_customer(executor: SchemaExecutor, schema: str, customer_id: str) -> None:
    result = await executor.query(
        schema,
        update(Customer)
        .where(Customer.id == customer_id)
        .values(status=RecordStatus.INACTIVE)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount == 0:
        raise NotFoundError("Customer not found")


async def award_loyalty_points(executor: SchemaExecutor, schema: str, customer_id: str, points: int) -> None:
    if points <= 0:
        return
    result = await executor.query(
        schema,
        update(Customer)
        .where(Customer.id == customer_id)
        .values(loyalty_points=Customer.loyalty_points + points)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount == 0:
        raise NotFoundError("Customer not found")
    logger.info(f"Awarded {points} loyalty points to {customer_id}", extra={"tenant_schema": schema})


async def redeem_loyalty_points(executor: SchemaExecutor, schema: str, customer_id: str, points: int) -> Customer:
    """Deduct points; the balance never goes below zero."""
    result = await executor.query(
        schema,
        update(Customer)
        .where(Customer.id == customer_id, Customer.loyalty_points >= points)
        .values(loyalty_points=Customer.loyalty_points - points)
        .execution_options(synchronize_session=False),
    )
    customer = await get_customer(executor, schema, customer_id)
    if result.rowcount == 0:
        raise BusinessRuleError(f"Insufficient loyalty points. Available: {customer.loyalty_points}")
    return customer


async def purchase_history(
    executor: SchemaExecutor,
    schema: str,
    customer_id: str,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[Sequence[Sale], int]:
    await get_customer(executor, schema, customer_id)
    stmt = select(Sale).where(Sale.customer_id == customer_id).order_by(Sale.created_at.desc())
    return await paginate(executor, schema, stmt, page, page_size)


async def count_customers(executor: SchemaExecutor, schema: str) -> int:
    result = await executor.query(
        schema, select(func.count(Customer.id)).where(Customer.status == RecordStatus.ACTIVE)
    )
    return result.scalar_one()
