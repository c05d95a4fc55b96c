"""Authentication API endpoints."""
from fastapi import APIRouter, HTTPException, status

from smartpos.core.config import settings
from smartpos.core.dependencies import BillingCtx, Executor, Registry
from smartpos.core.enums import RecordStatus
from smartpos.core.exceptions import NotFoundError
from smartpos.core.logging import get_logger
from smartpos.core.security import create_access_token, create_refresh_token, decode_token
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.repositories import tenants as tenants_repo
from smartpos.repositories import users as users_repo
from smartpos.schemas.auth import (
    LoginRequest, LoginResponse, RefreshTokenRequest, RegisterRequest,
    TenantSummary, TokenResponse, UserResponse,
)
from smartpos.services import accounts


router = APIRouter()
logger = get_logger(__name__)


def _tokens(account: TenantUser) -> TokenResponse:
    role = account.role.value
    return TokenResponse(
        access_token=create_access_token(account.id, account.tenant_id, role),
        refresh_token=create_refresh_token(account.id, account.tenant_id, role),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _login_response(tenant: Tenant, account: TenantUser) -> LoginResponse:
    return LoginResponse(
        user=UserResponse.model_validate(account),
        tenant=TenantSummary.model_validate(tenant),
        tokens=_tokens(account),
    )


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    registry: Registry,
    executor: Executor,
):
    """Register a business, provision its schema and sign in its admin."""
    tenant, admin = await accounts.register_tenant(registry, executor, request)
    return _login_response(tenant, admin)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    executor: Executor,
):
    """Authenticate a user of a business and return JWT tokens."""
    tenant, account = await accounts.authenticate(
        executor, request.business_email, request.username, request.password
    )
    return _login_response(tenant, account)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshTokenRequest,
    executor: Executor,
):
    """Refresh access token using a valid refresh token."""
    payload = decode_token(request.refresh_token)

    if payload is None or payload.type != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    try:
        account = await users_repo.get_user(executor, payload.tenant_id, payload.sub)
    except NotFoundError:
        account = None
    if account is None or account.status != RecordStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    logger.info(f"Token refreshed for user: {account.id}")
    return _tokens(account)


@router.get("/me", response_model=LoginResponse)
async def get_me(
    ctx: BillingCtx,
    executor: Executor,
):
    """Current user and tenant, with fresh tokens."""
    account = await users_repo.get_user(executor, ctx.tenant_id, ctx.user_id)
    tenant = await tenants_repo.get_tenant(executor, ctx.tenant_id)
    return _login_response(tenant, account)
