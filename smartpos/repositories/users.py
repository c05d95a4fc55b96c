"""User accounts.

`public.tenant_users` is the source of truth for logins. Each tenant schema
keeps a `users` projection with the same ids so sales, purchases and expenses
can reference the acting user. A failed projection write is logged and
repaired by `sync_user_projection` on the user's next login.
"""
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import RecordStatus
from smartpos.core.exceptions import ConstraintViolationError, NotFoundError, SmartPOSError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.core.security import get_password_hash
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.models.user import User
from smartpos.repositories.base import build_update_values


logger = get_logger(__name__)

UPDATABLE_FIELDS = ("full_name", "email", "role", "status", "password")

_PROJECTED_FIELDS = (
    "username", "password_hash", "full_name", "email", "role", "status", "last_login",
)


async def sync_user_projection(executor: SchemaExecutor, schema: str, account: TenantUser) -> None:
    """Upsert the tenant-schema copy of `account`."""
    async def upsert(session: AsyncSession) -> None:
        await session.merge(
            User(id=account.id, **{name: getattr(account, name) for name in _PROJECTED_FIELDS})
        )

    await executor.run_transaction(schema, upsert)


async def ensure_user_projection(executor: SchemaExecutor, schema: str, account: TenantUser) -> None:
    try:
        await sync_user_projection(executor, schema, account)
    except SmartPOSError:
        logger.exception(
            f"User projection out of date for {account.id}; repaired on next login",
            extra={"tenant_schema": schema, "user_id": account.id},
        )


async def rebuild_user_projection(executor: SchemaExecutor, tenant: Tenant) -> int:
    """Re-copy every account of `tenant` into its schema."""
    accounts = await list_users(executor, tenant.id)
    for account in accounts:
        await sync_user_projection(executor, tenant.tenant_schema, account)
    logger.info(
        f"Rebuilt {len(accounts)} user projections",
        extra={"tenant_schema": tenant.tenant_schema},
    )
    return len(accounts)


async def create_user(executor: SchemaExecutor, tenant: Tenant, data: dict) -> TenantUser:
    """Create a login in the shared schema, then project it into the tenant."""
    data = dict(data)
    password = data.pop("password")

    async def insert_user(session: AsyncSession) -> TenantUser:
        taken = await session.scalar(
            select(TenantUser.id).where(
                TenantUser.tenant_id == tenant.id,
                TenantUser.username == data["username"],
            )
        )
        if taken is not None:
            raise ConstraintViolationError("Username already exists")
        account = TenantUser(
            tenant_id=tenant.id,
            password_hash=get_password_hash(password),
            status=RecordStatus.ACTIVE,
            **data,
        )
        session.add(account)
        await session.flush()
        return account

    account = await executor.run_transaction(None, insert_user)
    logger.info(
        f"User created: {account.username} ({account.role.value})",
        extra={"tenant_schema": tenant.tenant_schema, "user_id": account.id},
    )
    await ensure_user_projection(executor, tenant.tenant_schema, account)
    return account


async def get_user(executor: SchemaExecutor, tenant_id: str, user_id: str) -> TenantUser:
    result = await executor.query(
        None,
        select(TenantUser).where(TenantUser.id == user_id, TenantUser.tenant_id == tenant_id),
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("User not found")
    return account


async def get_user_by_username(executor: SchemaExecutor, tenant_id: str, username: str) -> TenantUser:
    result = await executor.query(
        None,
        select(TenantUser).where(TenantUser.tenant_id == tenant_id, TenantUser.username == username),
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("User not found")
    return account


async def list_users(executor: SchemaExecutor, tenant_id: str) -> Sequence[TenantUser]:
    result = await executor.query(
        None,
        select(TenantUser).where(TenantUser.tenant_id == tenant_id).order_by(TenantUser.created_at),
    )
    return result.scalars().all()


async def update_user(executor: SchemaExecutor, tenant: Tenant, user_id: str, payload: dict) -> TenantUser:
    values = build_update_values(payload, UPDATABLE_FIELDS)
    if "password" in values:
        values["password_hash"] = get_password_hash(values.pop("password"))

    async def apply_update(session: AsyncSession) -> TenantUser:
        result = await session.execute(
            select(TenantUser).where(TenantUser.id == user_id, TenantUser.tenant_id == tenant.id)
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise NotFoundError("User not found")
        for field, value in values.items():
            setattr(account, field, value)
        await session.flush()
        return account

    account = await executor.run_transaction(None, apply_update)
    await ensure_user_projection(executor, tenant.tenant_schema, account)
    return account


async def delete_user(executor: SchemaExecutor, tenant: Tenant, user_id: str) -> TenantUser:
    """Soft delete; the account keeps owning its past sales."""
    return await update_user(executor, tenant, user_id, {"status": RecordStatus.INACTIVE})


async def record_last_login(executor: SchemaExecutor, account: TenantUser) -> TenantUser:
    now = datetime.now(timezone.utc)
    await executor.query(
        None,
        update(TenantUser)
        .where(TenantUser.id == account.id)
        .values(last_login=now)
        .execution_options(synchronize_session=False),
    )
    account.last_login = now
    return account
