"""Expense repository."""
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import ExpenseStatus
from smartpos.core.exceptions import NotFoundError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.expense import Expense
from smartpos.repositories.base import build_update_values, paginate
from smartpos.services.pricing import money


logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "category", "description", "amount", "payment_method",
    "reference", "expense_date", "status",
)


async def create_expense(executor: SchemaExecutor, schema: str, data: dict, user_id: Optional[str]) -> Expense:
    data = dict(data)
    if data.get("expense_date") is None:
        data["expense_date"] = date.today()

    async def insert_expense(session: AsyncSession) -> Expense:
        expense = Expense(**data, user_id=user_id, status=ExpenseStatus.APPROVED)
        session.add(expense)
        await session.flush()
        return expense

    expense = await executor.run_transaction(schema, insert_expense)
    logger.info(f"Expense recorded: {expense.id} {expense.amount}", extra={"tenant_schema": schema})
    return expense


async def get_expense(executor: SchemaExecutor, schema: str, expense_id: str) -> Expense:
    result = await executor.query(schema, select(Expense).where(Expense.id == expense_id))
    expense = result.scalar_one_or_none()
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


def _in_range(stmt, start: Optional[date], end: Optional[date]):
    if start is not None:
        stmt = stmt.where(Expense.expense_date >= start)
    if end is not None:
        stmt = stmt.where(Expense.expense_date <= end)
    return stmt


async def list_expenses(
    executor: SchemaExecutor,
    schema: str,
    page: int = 1,
    page_size: int = 20,
    category: Optional[str] = None,
    status: Optional[ExpenseStatus] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Tuple[Sequence[Expense], int]:
    stmt = select(Expense)
    if category:
        stmt = stmt.where(Expense.category == category)
    if status is not None:
        stmt = stmt.where(Expense.status == status)
    stmt = _in_range(stmt, start, end).order_by(Expense.expense_date.desc(), Expense.created_at.desc())
    return await paginate(executor, schema, stmt, page, page_size)


async def update_expense(executor: SchemaExecutor, schema: str, expense_id: str, payload: dict) -> Expense:
    values = build_update_values(payload, UPDATABLE_FIELDS)

    async def apply_update(session: AsyncSession) -> Expense:
        expense = await session.get(Expense, expense_id)
        if expense is None:
            raise NotFoundError("Expense not found")
        for field, value in values.items():
            setattr(expense, field, value)
        await session.flush()
        return expense

    return await executor.run_transaction(schema, apply_update)


async def delete_expense(executor: SchemaExecutor, schema: str, expense_id: str) -> None:
    result = await executor.query(schema, delete(Expense).where(Expense.id == expense_id))
    if result.rowcount == 0:
        raise NotFoundError("Expense not found")
    logger.info(f"Expense deleted: {expense_id}", extra={"tenant_schema": schema})


async def summary_by_category(
    executor: SchemaExecutor,
    schema: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[dict]:
    stmt = (
        select(
            Expense.category,
            func.count(Expense.id).label("count"),
            func.coalesce(func.sum(Expense.amount), 0).label("total"),
        )
        .where(Expense.status == ExpenseStatus.APPROVED)
        .group_by(Expense.category)
        .order_by(func.sum(Expense.amount).desc())
    )
    result = await executor.query(schema, _in_range(stmt, start, end))
    return [dict(row) for row in result.mappings().all()]


async def total_expenses(
    executor: SchemaExecutor,
    schema: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Decimal:
    stmt = select(func.coalesce(func.sum(Expense.amount), 0)).where(
        Expense.status == ExpenseStatus.APPROVED
    )
    result = await executor.query(schema, _in_range(stmt, start, end))
    return money(result.scalar_one())
