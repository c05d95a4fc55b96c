"""Tenant registration and login."""
from typing import Tuple

from smartpos.core.database import TenantEngineRegistry
from smartpos.core.enums import RecordStatus, SubscriptionStatus, UserRole
from smartpos.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.core.security import verify_password
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.repositories import tenants as tenants_repo
from smartpos.repositories import users as users_repo
from smartpos.schemas.auth import RegisterRequest
from smartpos.services.subscriptions import SubscriptionService


logger = get_logger(__name__)


async def _discard_tenant(registry: TenantEngineRegistry, executor: SchemaExecutor, tenant: Tenant) -> None:
    # A schema that cannot be dropped must not keep the business email taken
    try:
        await tenants_repo.drop_tenant_schema(registry, tenant.tenant_schema)
    except Exception:
        logger.exception(f"Could not drop schema {tenant.tenant_schema}")
    await tenants_repo.delete_tenant(executor, tenant.id)


async def register_tenant(
    registry: TenantEngineRegistry,
    executor: SchemaExecutor,
    request: RegisterRequest,
) -> Tuple[Tenant, TenantUser]:
    """Create the tenant row, its schema, the admin login and a trial."""
    tenant = await tenants_repo.create_tenant(
        executor,
        {
            "business_name": request.business_name,
            "business_email": request.business_email,
            "business_phone": request.business_phone,
            "business_address": request.business_address,
        },
    )

    try:
        await tenants_repo.provision_tenant_schema(registry, tenant.tenant_schema)
        admin = await users_repo.create_user(
            executor,
            tenant,
            {
                "username": request.admin_username,
                "password": request.admin_password,
                "full_name": request.admin_full_name,
                "email": request.admin_email or request.business_email,
                "role": UserRole.ADMIN,
            },
        )
        tenant = await SubscriptionService(executor).start_trial(tenant.id)
    except Exception:
        logger.exception(f"Registration failed for tenant {tenant.id}; removing schema and tenant row")
        await _discard_tenant(registry, executor, tenant)
        raise

    logger.info(
        f"Tenant registered: {tenant.business_name}",
        extra={"tenant_schema": tenant.tenant_schema, "user_id": admin.id},
    )
    return tenant, admin


async def authenticate(
    executor: SchemaExecutor,
    business_email: str,
    username: str,
    password: str,
) -> Tuple[Tenant, TenantUser]:
    """Resolve the tenant by business email, then check the user's password."""
    tenant = await tenants_repo.get_tenant_by_email(executor, business_email)
    if tenant is None:
        logger.warning(f"Failed login attempt for unknown business: {business_email}")
        raise AuthenticationError("Invalid credentials")

    try:
        account = await users_repo.get_user_by_username(executor, tenant.id, username)
    except NotFoundError:
        account = None
    if account is None or not verify_password(password, account.password_hash):
        logger.warning(f"Failed login attempt for {username} at tenant {tenant.id}")
        raise AuthenticationError("Invalid credentials")

    if account.status != RecordStatus.ACTIVE:
        raise PermissionDeniedError("User account is inactive")
    if tenant.subscription_status == SubscriptionStatus.INACTIVE:
        raise PermissionDeniedError("Tenant account is inactive")

    account = await users_repo.record_last_login(executor, account)
    # Repair the tenant-schema copy if an earlier write missed it
    await users_repo.ensure_user_projection(executor, tenant.tenant_schema, account)
    logger.info(f"User logged in: {account.id}, tenant: {tenant.id}")
    return tenant, account
