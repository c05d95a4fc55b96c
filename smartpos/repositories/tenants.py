"""Tenant registry (shared schema) and tenant schema provisioning."""
from typing import Optional, Sequence, Tuple

from sqlalchemy import case, delete, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.database import TenantBase, TenantEngineRegistry, generate_tenant_schema, validate_schema_name
from smartpos.core.enums import RecordStatus, SubscriptionStatus
from smartpos.core.exceptions import ConstraintViolationError, NotFoundError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.repositories.base import build_update_values, paginate

# Registers every tenant table on TenantBase.metadata
import smartpos.models  # noqa: F401


logger = get_logger(__name__)

SETTINGS_FIELDS = (
    "business_name", "business_phone", "business_address",
    "mpesa_till_number", "mpesa_paybill", "mpesa_account_number",
)
SUBSCRIPTION_FIELDS = (
    "subscription_status", "subscription_plan", "is_trial", "trial_ends_at",
    "subscription_started_at", "subscription_ends_at", "grace_period_days",
    "monthly_price", "auto_renew",
)


async def provision_tenant_schema(registry: TenantEngineRegistry, schema: str) -> None:
    """Create the schema (PostgreSQL) and every tenant table inside it."""
    schema = validate_schema_name(schema)
    async with registry.lease(schema) as engine, engine.begin() as conn:
        if registry.is_postgresql:
            quoted = conn.dialect.identifier_preparer.quote_identifier(schema)
            await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {quoted}"))
        await conn.run_sync(TenantBase.metadata.create_all)
    logger.info(f"Provisioned tenant schema {schema}", extra={"tenant_schema": schema})


async def drop_tenant_schema(registry: TenantEngineRegistry, schema: str) -> None:
    """Remove a schema created by a registration that failed part way."""
    schema = validate_schema_name(schema)
    async with registry.lease(schema) as engine, engine.begin() as conn:
        if registry.is_postgresql:
            quoted = conn.dialect.identifier_preparer.quote_identifier(schema)
            await conn.execute(text(f"DROP SCHEMA IF EXISTS {quoted} CASCADE"))
        else:
            await conn.run_sync(TenantBase.metadata.drop_all)
    logger.warning(f"Dropped tenant schema {schema}", extra={"tenant_schema": schema})


async def create_tenant(executor: SchemaExecutor, data: dict) -> Tenant:
    """Insert a tenant with a freshly generated schema name."""
    async def insert_tenant(session: AsyncSession) -> Tenant:
        taken = await session.scalar(
            select(Tenant.id).where(Tenant.business_email == data["business_email"])
        )
        if taken is not None:
            raise ConstraintViolationError("A business with this email is already registered")
        tenant = Tenant(
            tenant_name=data["business_name"],
            tenant_schema=generate_tenant_schema(data["business_name"]),
            subscription_status=SubscriptionStatus.ACTIVE,
            **data,
        )
        session.add(tenant)
        await session.flush()
        return tenant

    tenant = await executor.run_transaction(None, insert_tenant)
    logger.info(f"Tenant created: {tenant.id} schema={tenant.tenant_schema}")
    return tenant


async def delete_tenant(executor: SchemaExecutor, tenant_id: str) -> None:
    async def remove(session: AsyncSession) -> None:
        await session.execute(delete(TenantUser).where(TenantUser.tenant_id == tenant_id))
        await session.execute(delete(Tenant).where(Tenant.id == tenant_id))

    await executor.run_transaction(None, remove)


async def get_tenant(executor: SchemaExecutor, tenant_id: str) -> Tenant:
    result = await executor.query(None, select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return tenant


async def get_tenant_by_schema(executor: SchemaExecutor, schema: str) -> Tenant:
    result = await executor.query(None, select(Tenant).where(Tenant.tenant_schema == schema))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return tenant


async def get_tenant_by_email(executor: SchemaExecutor, business_email: str) -> Optional[Tenant]:
    result = await executor.query(
        None, select(Tenant).where(func.lower(Tenant.business_email) == business_email.lower())
    )
    return result.scalar_one_or_none()


async def _update_fields(executor: SchemaExecutor, tenant_id: str, values: dict) -> Tenant:
    async def apply_update(session: AsyncSession) -> Tenant:
        tenant = await session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")
        for field, value in values.items():
            setattr(tenant, field, value)
        await session.flush()
        return tenant

    return await executor.run_transaction(None, apply_update)


async def update_settings(executor: SchemaExecutor, tenant_id: str, payload: dict) -> Tenant:
    values = build_update_values(payload, SETTINGS_FIELDS)
    if "business_name" in values:
        values["tenant_name"] = values["business_name"]
    return await _update_fields(executor, tenant_id, values)


async def update_subscription(executor: SchemaExecutor, tenant_id: str, payload: dict) -> Tenant:
    """Subscription columns only; `None` is a valid value here."""
    unknown = set(payload) - set(SUBSCRIPTION_FIELDS)
    if unknown or not payload:
        raise ValueError(f"Not subscription fields: {sorted(unknown)}")
    return await _update_fields(executor, tenant_id, dict(payload))


async def deactivate_tenant(executor: SchemaExecutor, tenant_id: str) -> Tenant:
    tenant = await _update_fields(
        executor, tenant_id, {"subscription_status": SubscriptionStatus.INACTIVE}
    )
    logger.warning(f"Tenant deactivated: {tenant_id}")
    return tenant


async def list_tenants(
    executor: SchemaExecutor,
    page: int = 1,
    page_size: int = 20,
    status: Optional[SubscriptionStatus] = None,
) -> Tuple[Sequence[Tenant], int]:
    stmt = select(Tenant)
    if status is not None:
        stmt = stmt.where(Tenant.subscription_status == status)
    return await paginate(executor, None, stmt.order_by(Tenant.created_at.desc()), page, page_size)


async def tenant_stats(executor: SchemaExecutor, tenant_id: str) -> dict:
    result = await executor.query(
        None,
        select(
            func.count(TenantUser.id).label("user_count"),
            func.coalesce(
                func.sum(case((TenantUser.status == RecordStatus.ACTIVE, 1), else_=0)), 0
            ).label("active_users"),
        ).where(TenantUser.tenant_id == tenant_id),
    )
    row = result.mappings().one()
    return {"user_count": row["user_count"], "active_users": row["active_users"]}
