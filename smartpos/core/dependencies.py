"""Application dependencies for dependency injection."""
from dataclasses import dataclass
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from smartpos.core.database import TenantEngineRegistry
from smartpos.core.enums import RecordStatus, SubscriptionStatus, UserRole
from smartpos.core.exceptions import SubscriptionInactiveError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.core.security import decode_token, TokenPayload
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.services.payments import PaymentGateway
from smartpos.services.subscriptions import SubscriptionService


security = HTTPBearer()
logger = get_logger(__name__)


def get_registry(request: Request) -> TenantEngineRegistry:
    return request.app.state.registry


def get_executor(request: Request) -> SchemaExecutor:
    return request.app.state.executor


def get_payment_gateway(request: Request) -> Optional[PaymentGateway]:
    return getattr(request.app.state, "payment_gateway", None)


Registry = Annotated[TenantEngineRegistry, Depends(get_registry)]
Executor = Annotated[SchemaExecutor, Depends(get_executor)]
Gateway = Annotated[Optional[PaymentGateway], Depends(get_payment_gateway)]


def get_subscription_service(executor: Executor) -> SubscriptionService:
    return SubscriptionService(executor)


Subscriptions = Annotated[SubscriptionService, Depends(get_subscription_service)]


async def get_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Validate and decode the JWT token from the Authorization header."""
    payload = decode_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type. Access token required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


@dataclass
class TenantContext:
    """Who is calling and which schema their data lives in."""
    user_id: str
    tenant_id: str
    tenant_schema: str
    role: str
    username: str
    full_name: str


async def _resolve_context(executor: SchemaExecutor, token: TokenPayload, allowed_status: set) -> TenantContext:
    """Resolve the caller from the shared schema; never trust the token's role."""
    result = await executor.query(
        None,
        select(TenantUser, Tenant)
        .join(Tenant, Tenant.id == TenantUser.tenant_id)
        .where(
            TenantUser.id == token.sub,
            TenantUser.tenant_id == token.tenant_id,
            TenantUser.status == RecordStatus.ACTIVE,
        ),
    )
    row = result.one_or_none()

    if row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account, tenant = row
    if tenant.subscription_status not in allowed_status:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Tenant account is {tenant.subscription_status.value}",
        )

    return TenantContext(
        user_id=account.id,
        tenant_id=tenant.id,
        tenant_schema=tenant.tenant_schema,
        role=account.role.value,
        username=account.username,
        full_name=account.full_name,
    )


async def get_tenant_context(
    executor: Executor,
    token: TokenPayload = Depends(get_current_token),
) -> TenantContext:
    return await _resolve_context(executor, token, {SubscriptionStatus.ACTIVE})


async def get_billing_context(
    executor: Executor,
    token: TokenPayload = Depends(get_current_token),
) -> TenantContext:
    """Like `get_tenant_context` but lets lapsed tenants in to pay and renew."""
    return await _resolve_context(
        executor,
        token,
        {SubscriptionStatus.ACTIVE, SubscriptionStatus.SUSPENDED, SubscriptionStatus.CANCELLED},
    )


# Type aliases for cleaner dependency injection
CurrentToken = Annotated[TokenPayload, Depends(get_current_token)]
TenantCtx = Annotated[TenantContext, Depends(get_tenant_context)]
BillingCtx = Annotated[TenantContext, Depends(get_billing_context)]


def require_role(*roles: UserRole, context=get_tenant_context):
    """Dependency factory to require specific roles."""
    allowed = {UserRole(r).value for r in roles}

    async def role_checker(ctx: TenantContext = Depends(context)) -> TenantContext:
        if ctx.role not in allowed:
            logger.warning(
                f"Role '{ctx.role}' denied; requires {sorted(allowed)}",
                extra={"tenant_schema": ctx.tenant_schema, "user_id": ctx.user_id},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{ctx.role}' not authorized. Required: {sorted(allowed)}",
            )
        return ctx
    return role_checker


async def require_active_subscription(
    ctx: TenantCtx,
    subscriptions: Subscriptions,
) -> TenantContext:
    """Block writes for tenants whose subscription has lapsed."""
    if not await subscriptions.is_subscription_active(ctx.tenant_id):
        raise SubscriptionInactiveError("Your subscription has expired. Please renew to continue.")
    return ctx


ActiveTenantCtx = Annotated[TenantContext, Depends(require_active_subscription)]

Admins = Annotated[TenantContext, Depends(require_role(UserRole.ADMIN))]
BillingAdmins = Annotated[TenantContext, Depends(require_role(UserRole.ADMIN, context=get_billing_context))]
Managers = Annotated[TenantContext, Depends(require_role(UserRole.ADMIN, UserRole.MANAGER))]
StockManagers = Annotated[
    TenantContext,
    Depends(require_role(UserRole.ADMIN, UserRole.MANAGER, UserRole.STOREKEEPER)),
]

# Attach to write routes
WRITE_ACCESS = [Depends(require_active_subscription)]
