"""Subscription payments through an STK-push style payment gateway."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol, Sequence

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.config import settings
from smartpos.core.enums import PaymentStatus
from smartpos.core.exceptions import BusinessRuleError, NotFoundError, ServiceUnavailableError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.billing import Payment
from smartpos.services.pricing import money
from smartpos.services.subscriptions import TRIAL_PLAN, SubscriptionService


logger = get_logger(__name__)


@dataclass
class GatewayResult:
    success: bool
    checkout_request_id: Optional[str] = None
    merchant_request_id: Optional[str] = None
    message: Optional[str] = None
    raw: dict = field(default_factory=dict)


class PaymentGateway(Protocol):
    async def request_payment(
        self, phone: str, amount: Decimal, reference: str, description: str
    ) -> GatewayResult:
        ...


def format_phone_number(phone: str) -> str:
    """Normalise a Kenyan mobile number to 2547XXXXXXXX."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    if digits.startswith("254"):
        return digits
    if digits.startswith("0"):
        return "254" + digits[1:]
    if len(digits) == 9:
        return "254" + digits
    return digits


class HttpPaymentGateway:
    """JSON-over-HTTP client for the payment gateway."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        callback_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.callback_url = callback_url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> Optional["HttpPaymentGateway"]:
        if not settings.PAYMENT_GATEWAY_URL:
            return None
        return cls(
            settings.PAYMENT_GATEWAY_URL,
            api_key=settings.PAYMENT_GATEWAY_API_KEY,
            callback_url=settings.PAYMENT_CALLBACK_URL,
        )

    async def request_payment(
        self, phone: str, amount: Decimal, reference: str, description: str
    ) -> GatewayResult:
        payload = {
            "phone": format_phone_number(phone),
            "amount": int(money(amount).to_integral_value()),
            "reference": reference,
            "description": description,
            "callback_url": self.callback_url,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
            try:
                response = await client.post(
                    "/stkpush", json=payload, headers=headers, timeout=self.timeout
                )
                if response.is_error:
                    logger.error(
                        f"Payment request {reference} failed with status {response.status_code}. "
                        f"Response: {response.text}"
                    )
                    response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                return GatewayResult(success=False, message=f"Gateway error {e.response.status_code}")
            except httpx.TransportError as e:
                logger.error(f"Payment gateway unreachable for {reference}: {e}")
                return GatewayResult(success=False, message="Payment gateway unreachable")

        logger.info(f"Payment request {reference} accepted by gateway")
        return GatewayResult(
            success=bool(data.get("success", True)),
            checkout_request_id=data.get("checkout_request_id"),
            merchant_request_id=data.get("merchant_request_id"),
            message=data.get("message"),
            raw=data,
        )


async def initiate_subscription_payment(
    executor: SchemaExecutor,
    subscriptions: SubscriptionService,
    gateway: Optional[PaymentGateway],
    tenant_id: str,
    plan_name: str,
    months: int,
    phone: str,
) -> Payment:
    """Write a pending payment and push the payment request to the phone."""
    if gateway is None:
        raise ServiceUnavailableError("Payment gateway is not configured")
    if plan_name == TRIAL_PLAN:
        raise BusinessRuleError("Cannot purchase trial plan")

    plan = await subscriptions.get_plan(plan_name)
    amount = money(plan.price_monthly * months)

    async def insert_payment(session: AsyncSession) -> Payment:
        payment = Payment(
            tenant_id=tenant_id,
            payment_method="mpesa",
            amount=amount,
            phone=phone,
            subscription_period=plan.plan_name,
            subscription_months=months,
            status=PaymentStatus.PENDING,
        )
        session.add(payment)
        await session.flush()
        return payment

    payment = await executor.run_transaction(None, insert_payment)

    result = await gateway.request_payment(
        phone,
        amount,
        f"SUB{payment.id[:8].upper()}",
        f"SmartPOS {plan.display_name} - {months} month(s)",
    )

    async def record_request(session: AsyncSession) -> Payment:
        row = await session.get(Payment, payment.id)
        row.details = result.raw or {"message": result.message}
        if result.success:
            row.checkout_request_id = result.checkout_request_id
            row.merchant_request_id = result.merchant_request_id
        else:
            row.status = PaymentStatus.FAILED
            row.result_desc = result.message
        await session.flush()
        return row

    payment = await executor.run_transaction(None, record_request)
    logger.info(f"Subscription payment {payment.id} for tenant {tenant_id}: {payment.status.value}")
    return payment


async def complete_payment(
    executor: SchemaExecutor,
    subscriptions: SubscriptionService,
    checkout_request_id: str,
    success: bool,
    result_code: Optional[str] = None,
    result_desc: Optional[str] = None,
    transaction_id: Optional[str] = None,
) -> Optional[Payment]:
    """Apply a gateway result. Returns None for unknown checkout requests."""
    async def mark_payment(session: AsyncSession) -> Optional[tuple]:
        result = await session.execute(
            select(Payment)
            .where(Payment.checkout_request_id == checkout_request_id)
            .with_for_update()
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            return None
        if payment.status != PaymentStatus.PENDING:
            return payment, False
        now = datetime.now(timezone.utc)
        payment.result_code = result_code
        payment.result_desc = result_desc
        if success:
            payment.status = PaymentStatus.COMPLETED
            payment.transaction_id = transaction_id
            payment.payment_date = now
            payment.verified_at = now
        else:
            payment.status = PaymentStatus.FAILED
        await session.flush()
        return payment, success

    outcome = await executor.run_transaction(None, mark_payment)
    if outcome is None:
        logger.warning(f"Payment not found for checkout request {checkout_request_id}")
        return None

    payment, upgrade = outcome
    if upgrade:
        await subscriptions.upgrade_subscription(
            payment.tenant_id, payment.subscription_period, payment.subscription_months
        )
        logger.info(f"Payment successful for tenant {payment.tenant_id}")
    elif payment.status == PaymentStatus.FAILED:
        logger.warning(f"Payment failed for tenant {payment.tenant_id}: {result_desc}")
    return payment


async def get_payment(executor: SchemaExecutor, tenant_id: str, payment_id: str) -> Payment:
    result = await executor.query(
        None, select(Payment).where(Payment.id == payment_id, Payment.tenant_id == tenant_id)
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


async def payment_history(executor: SchemaExecutor, tenant_id: str) -> Sequence[Payment]:
    result = await executor.query(
        None,
        select(Payment).where(Payment.tenant_id == tenant_id).order_by(Payment.created_at.desc()),
    )
    return result.scalars().all()
