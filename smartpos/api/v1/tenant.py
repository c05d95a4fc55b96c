"""Tenant settings and subscription endpoints."""
from typing import List
from fastapi import APIRouter

from smartpos.core.dependencies import Admins, BillingAdmins, BillingCtx, Executor, Subscriptions
from smartpos.repositories import tenants as tenants_repo
from smartpos.schemas.tenant import (
    CancelSubscriptionRequest, SubscriptionHistoryResponse, SubscriptionInfo,
    TenantResponse, TenantSettingsUpdate, TenantStats,
)


router = APIRouter()

_MPESA_FIELDS = ("mpesa_till_number", "mpesa_paybill", "mpesa_account_number")


@router.get("/info", response_model=TenantResponse)
async def get_tenant_info(ctx: BillingCtx, executor: Executor):
    tenant = await tenants_repo.get_tenant(executor, ctx.tenant_id)
    return TenantResponse.model_validate(tenant)


@router.put("/info", response_model=TenantResponse)
async def update_tenant_info(body: TenantSettingsUpdate, ctx: Admins, executor: Executor):
    """Business details. Allowed while the subscription is lapsed."""
    tenant = await tenants_repo.update_settings(
        executor, ctx.tenant_id, body.model_dump(exclude_unset=True)
    )
    return TenantResponse.model_validate(tenant)


@router.put("/mpesa-settings", response_model=TenantResponse)
async def update_mpesa_settings(body: TenantSettingsUpdate, ctx: Admins, executor: Executor):
    payload = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if k in _MPESA_FIELDS
    }
    tenant = await tenants_repo.update_settings(executor, ctx.tenant_id, payload)
    return TenantResponse.model_validate(tenant)


@router.get("/stats", response_model=TenantStats)
async def get_tenant_stats(ctx: Admins, executor: Executor):
    return await tenants_repo.tenant_stats(executor, ctx.tenant_id)


@router.get("/subscription", response_model=SubscriptionInfo)
async def get_subscription(ctx: BillingCtx, subscriptions: Subscriptions):
    return await subscriptions.get_tenant_subscription(ctx.tenant_id)


@router.get("/subscription/history", response_model=List[SubscriptionHistoryResponse])
async def get_subscription_history(ctx: BillingAdmins, subscriptions: Subscriptions):
    entries = await subscriptions.get_history(ctx.tenant_id)
    return [SubscriptionHistoryResponse.model_validate(e) for e in entries]


@router.post("/subscription/cancel", response_model=TenantResponse)
async def cancel_subscription(
    body: CancelSubscriptionRequest,
    ctx: Admins,
    subscriptions: Subscriptions,
):
    tenant = await subscriptions.cancel_subscription(ctx.tenant_id, body.reason, performed_by=ctx.user_id)
    return TenantResponse.model_validate(tenant)
