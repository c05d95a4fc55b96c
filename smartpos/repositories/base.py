"""Helpers shared by the repositories."""
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select

from smartpos.core.exceptions import BusinessRuleError
from smartpos.core.executor import SchemaExecutor


def build_update_values(payload: Mapping[str, Any], allowed_fields: Iterable[str]) -> dict:
    """Keep only allow-listed, non-null fields of an update payload."""
    allowed = set(allowed_fields)
    values = {k: v for k, v in payload.items() if k in allowed and v is not None}
    if not values:
        raise BusinessRuleError("No valid fields to update")
    return values


async def paginate(
    executor: SchemaExecutor,
    schema: Optional[str],
    statement: Select,
    page: int,
    page_size: int,
) -> Tuple[Sequence[Any], int]:
    """Run `statement` for one page and return ``(rows, total)``."""
    count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
    total = (await executor.query(schema, count_stmt)).scalar_one()
    result = await executor.query(
        schema, statement.limit(page_size).offset((page - 1) * page_size)
    )
    return result.scalars().all(), total


def day_bounds(start: Optional[date] = None, end: Optional[date] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive calendar-day range as ``[start 00:00, end+1 00:00)`` in UTC."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc) if end else None
    return lower, upper


def within(stmt: Select, column, lower: Optional[datetime], upper: Optional[datetime]) -> Select:
    if lower is not None:
        stmt = stmt.where(column >= lower)
    if upper is not None:
        stmt = stmt.where(column < upper)
    return stmt
