"""Subscription payment endpoints."""
from typing import List
from fastapi import APIRouter, status

from smartpos.core.dependencies import BillingAdmins, BillingCtx, Executor, Gateway, Subscriptions
from smartpos.core.logging import get_logger
from smartpos.schemas.common import MessageResponse
from smartpos.schemas.tenant import (
    PaymentCallback, PaymentHistory, PaymentInitiateRequest, PaymentResponse,
    PlanResponse, SubscriptionInfo,
)
from smartpos.services import payments as payments_service


router = APIRouter()
logger = get_logger(__name__)


@router.get("/plans", response_model=List[PlanResponse])
async def get_plans(subscriptions: Subscriptions):
    """Public list of plans."""
    plans = await subscriptions.get_plans()
    return [PlanResponse.model_validate(p) for p in plans]


@router.get("/subscription", response_model=SubscriptionInfo)
async def get_subscription(ctx: BillingCtx, subscriptions: Subscriptions):
    return await subscriptions.get_tenant_subscription(ctx.tenant_id)


@router.post("/initiate", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def initiate_payment(
    body: PaymentInitiateRequest,
    ctx: BillingAdmins,
    executor: Executor,
    subscriptions: Subscriptions,
    gateway: Gateway,
):
    """Push a payment request to the phone. Open to lapsed tenants so they can renew."""
    payment = await payments_service.initiate_subscription_payment(
        executor, subscriptions, gateway, ctx.tenant_id, body.plan_name, body.months, body.phone
    )
    return PaymentResponse.model_validate(payment)


@router.get("/status/{payment_id}", response_model=PaymentResponse)
async def payment_status(payment_id: str, ctx: BillingCtx, executor: Executor):
    payment = await payments_service.get_payment(executor, ctx.tenant_id, payment_id)
    return PaymentResponse.model_validate(payment)


@router.get("/history", response_model=PaymentHistory)
async def payment_history(ctx: BillingCtx, executor: Executor):
    payments = await payments_service.payment_history(executor, ctx.tenant_id)
    return PaymentHistory(payments=[PaymentResponse.model_validate(p) for p in payments])


@router.post("/callback", response_model=MessageResponse)
async def payment_callback(
    body: PaymentCallback,
    executor: Executor,
    subscriptions: Subscriptions,
):
    """Gateway result; always acknowledged so the gateway stops retrying."""
    payment = await payments_service.complete_payment(
        executor,
        subscriptions,
        body.checkout_request_id,
        body.success,
        result_code=body.result_code,
        result_desc=body.result_desc,
        transaction_id=body.transaction_id,
    )
    if payment is None:
        return MessageResponse(message="Unknown checkout request")
    return MessageResponse(message="Callback processed")
