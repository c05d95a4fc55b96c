"""Expense API endpoints."""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from smartpos.core.dependencies import Admins, Executor, Managers, WRITE_ACCESS
from smartpos.core.enums import ExpenseStatus
from smartpos.repositories import expenses as expenses_repo
from smartpos.schemas.common import Page
from smartpos.schemas.expense import (
    ExpenseCategoryTotal, ExpenseCreate, ExpenseResponse, ExpenseUpdate,
)


router = APIRouter()

# Suggested categories for the client; any category is accepted
DEFAULT_CATEGORIES = [
    "Rent", "Utilities", "Salaries", "Transport", "Supplies",
    "Maintenance", "Marketing", "Taxes", "Other",
]


class ExpenseTotal(BaseModel):
    total: Decimal


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_expense(body: ExpenseCreate, ctx: Managers, executor: Executor):
    expense = await expenses_repo.create_expense(
        executor, ctx.tenant_schema, body.model_dump(), ctx.user_id
    )
    return ExpenseResponse.model_validate(expense)


@router.get("", response_model=Page[ExpenseResponse])
async def list_expenses(
    ctx: Managers,
    executor: Executor,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    category: Optional[str] = None,
    expense_status: Optional[ExpenseStatus] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    expenses, total = await expenses_repo.list_expenses(
        executor, ctx.tenant_schema, page, page_size,
        category=category, status=expense_status, start=start_date, end=end_date,
    )
    return Page[ExpenseResponse](
        items=[ExpenseResponse.model_validate(e) for e in expenses],
        total=total, page=page, page_size=page_size,
    )


@router.get("/summary", response_model=List[ExpenseCategoryTotal])
async def expense_summary(
    ctx: Managers,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    return await expenses_repo.summary_by_category(executor, ctx.tenant_schema, start_date, end_date)


@router.get("/total", response_model=ExpenseTotal)
async def expense_total(
    ctx: Managers,
    executor: Executor,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    total = await expenses_repo.total_expenses(executor, ctx.tenant_schema, start_date, end_date)
    return ExpenseTotal(total=total)


@router.get("/categories", response_model=List[str])
async def expense_categories(ctx: Managers):
    return DEFAULT_CATEGORIES


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(expense_id: str, ctx: Managers, executor: Executor):
    expense = await expenses_repo.get_expense(executor, ctx.tenant_schema, expense_id)
    return ExpenseResponse.model_validate(expense)


@router.put("/{expense_id}", response_model=ExpenseResponse, dependencies=WRITE_ACCESS)
async def update_expense(expense_id: str, body: ExpenseUpdate, ctx: Managers, executor: Executor):
    expense = await expenses_repo.update_expense(
        executor, ctx.tenant_schema, expense_id, body.model_dump(exclude_unset=True)
    )
    return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=WRITE_ACCESS)
async def delete_expense(expense_id: str, ctx: Admins, executor: Executor):
    await expenses_repo.delete_expense(executor, ctx.tenant_schema, expense_id)
