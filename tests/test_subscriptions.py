"""Subscription lifecycle and subscription payment tests."""
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

from smartpos.core.enums import PaymentStatus, SubscriptionStatus
from smartpos.core.exceptions import BusinessRuleError, NotFoundError, ServiceUnavailableError
from smartpos.repositories import tenants as tenants_repo
from smartpos.services.payments import (
    GatewayResult,
    HttpPaymentGateway,
    complete_payment,
    format_phone_number,
    initiate_subscription_payment,
)
from smartpos.services.subscriptions import SubscriptionService, add_months, as_utc


class FakeGateway:
    """Accepts every request and remembers it."""

    def __init__(self, success: bool = True):
        self.success = success
        self.requests = []

    async def request_payment(self, phone, amount, reference, description):
        self.requests.append({"phone": phone, "amount": amount, "reference": reference})
        if not self.success:
            return GatewayResult(success=False, message="Insufficient funds")
        return GatewayResult(
            success=True,
            checkout_request_id=f"ws_CO_{len(self.requests)}",
            merchant_request_id="mr-1",
            raw={"accepted": True},
        )


@pytest_asyncio.fixture
async def subscriptions(executor) -> SubscriptionService:
    return SubscriptionService(executor)


async def expire_trial(executor, tenant_id: str, days_ago: int):
    return await tenants_repo.update_subscription(
        executor,
        tenant_id,
        {"trial_ends_at": datetime.now(timezone.utc) - timedelta(days=days_ago)},
    )


def test_add_months_clamps_day():
    start = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)
    assert add_months(start, 1) == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert add_months(start, 12) == datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0712345678", "254712345678"),
        ("+254 712 345 678", "254712345678"),
        ("712345678", "254712345678"),
        ("254712345678", "254712345678"),
    ],
)
def test_format_phone_number(raw, expected):
    assert format_phone_number(raw) == expected


@pytest.mark.asyncio
async def test_registration_starts_trial(subscriptions, shop):
    tenant, _ = shop
    assert tenant.subscription_plan == "trial"
    assert tenant.is_trial is True
    assert await subscriptions.is_subscription_active(tenant.id)

    info = await subscriptions.get_tenant_subscription(tenant.id)
    assert info["display_name"] == "Free Trial"
    assert 28 <= info["days_remaining"] <= 30

    history = await subscriptions.get_history(tenant.id)
    assert [entry.action for entry in history] == ["trial_started"]


@pytest.mark.asyncio
async def test_grace_period_keeps_tenant_active(executor, subscriptions, shop):
    tenant, _ = shop
    await expire_trial(executor, tenant.id, days_ago=1)
    assert await subscriptions.is_subscription_active(tenant.id)


@pytest.mark.asyncio
async def test_lapsed_tenant_is_suspended(executor, subscriptions, shop):
    tenant, _ = shop
    await expire_trial(executor, tenant.id, days_ago=10)

    assert not await subscriptions.is_subscription_active(tenant.id)

    reloaded = await tenants_repo.get_tenant(executor, tenant.id)
    assert reloaded.subscription_status == SubscriptionStatus.SUSPENDED
    actions = [entry.action for entry in await subscriptions.get_history(tenant.id)]
    assert "subscription_suspended" in actions


@pytest.mark.asyncio
async def test_expired_subscription_blocks_writes(client: AsyncClient, executor, shop, admin_headers):
    tenant, _ = shop
    await expire_trial(executor, tenant.id, days_ago=10)

    response = await client.post(
        "/api/v1/products",
        headers=admin_headers,
        json={"name": "Tea", "barcode": "6161100000066", "category": "Beverages",
              "cost_price": "40", "selling_price": "55"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "SUBSCRIPTION_EXPIRED"

    # Suspended tenants can still see their billing state
    info = await client.get("/api/v1/tenant/subscription", headers=admin_headers)
    assert info.status_code == 200
    assert info.json()["subscription_status"] == "suspended"
    assert info.json()["is_active"] is False

    # but not the shop itself
    products = await client.get("/api/v1/products", headers=admin_headers)
    assert products.status_code == 403


@pytest.mark.asyncio
async def test_write_allowed_within_grace(client: AsyncClient, executor, shop, admin_headers):
    tenant, _ = shop
    await expire_trial(executor, tenant.id, days_ago=1)

    response = await client.post(
        "/api/v1/products",
        headers=admin_headers,
        json={"name": "Tea", "barcode": "6161100000066", "category": "Beverages",
              "cost_price": "40", "selling_price": "55"},
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_upgrade_subscription(subscriptions, shop):
    tenant, _ = shop
    upgraded = await subscriptions.upgrade_subscription(tenant.id, "basic", months=2)

    assert upgraded.subscription_plan == "basic"
    assert upgraded.is_trial is False
    assert upgraded.subscription_status == SubscriptionStatus.ACTIVE
    assert upgraded.monthly_price == Decimal("1500")
    assert as_utc(upgraded.subscription_ends_at) > datetime.now(timezone.utc) + timedelta(days=55)

    history = await subscriptions.get_history(tenant.id)
    assert history[0].action == "subscription_upgraded"
    assert history[0].previous_plan == "trial"
    assert history[0].new_plan == "basic"


@pytest.mark.asyncio
async def test_trial_plan_cannot_be_bought(subscriptions, shop):
    with pytest.raises(BusinessRuleError):
        await subscriptions.upgrade_subscription(shop[0].id, "trial")


@pytest.mark.asyncio
async def test_unknown_plan_rejected(subscriptions, shop):
    with pytest.raises(NotFoundError):
        await subscriptions.upgrade_subscription(shop[0].id, "platinum")


@pytest.mark.asyncio
async def test_renew_extends_from_current_end(subscriptions, shop):
    tenant, _ = shop
    upgraded = await subscriptions.upgrade_subscription(tenant.id, "basic", months=1)
    renewed = await subscriptions.renew_subscription(tenant.id, months=1)

    assert as_utc(renewed.subscription_ends_at) == add_months(as_utc(upgraded.subscription_ends_at), 1)


@pytest.mark.asyncio
async def test_cancel_subscription(client: AsyncClient, shop, admin_headers):
    response = await client.post(
        "/api/v1/tenant/subscription/cancel", headers=admin_headers, json={"reason": "Closing shop"}
    )
    assert response.status_code == 200
    assert response.json()["subscription_status"] == "cancelled"

    history = await client.get("/api/v1/tenant/subscription/history", headers=admin_headers)
    assert history.status_code == 200
    assert history.json()[0]["action"] == "subscription_cancelled"


@pytest.mark.asyncio
async def test_payment_success_upgrades_once(executor, subscriptions, shop):
    tenant, _ = shop
    gateway = FakeGateway()

    payment = await initiate_subscription_payment(
        executor, subscriptions, gateway, tenant.id, "premium", 2, "0712345678"
    )
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == Decimal("6000.00")
    assert payment.checkout_request_id == "ws_CO_1"
    assert gateway.requests[0]["reference"].startswith("SUB")

    completed = await complete_payment(
        executor, subscriptions, "ws_CO_1", True, result_code="0", transaction_id="QK12345"
    )
    assert completed.status == PaymentStatus.COMPLETED
    assert completed.transaction_id == "QK12345"

    tenant = await tenants_repo.get_tenant(executor, tenant.id)
    assert tenant.subscription_plan == "premium"
    first_end = tenant.subscription_ends_at

    # Gateways retry callbacks; a repeat must not extend the subscription again
    await complete_payment(executor, subscriptions, "ws_CO_1", True)
    tenant = await tenants_repo.get_tenant(executor, tenant.id)
    assert tenant.subscription_ends_at == first_end
    upgrades = [e for e in await subscriptions.get_history(tenant.id) if e.action == "subscription_upgraded"]
    assert len(upgrades) == 1


@pytest.mark.asyncio
async def test_failed_payment_leaves_plan(executor, subscriptions, shop):
    tenant, _ = shop
    await initiate_subscription_payment(
        executor, subscriptions, FakeGateway(), tenant.id, "basic", 1, "0712345678"
    )

    failed = await complete_payment(executor, subscriptions, "ws_CO_1", False, result_desc="Cancelled by user")
    assert failed.status == PaymentStatus.FAILED
    assert (await tenants_repo.get_tenant(executor, tenant.id)).subscription_plan == "trial"


@pytest.mark.asyncio
async def test_rejected_push_marks_payment_failed(executor, subscriptions, shop):
    payment = await initiate_subscription_payment(
        executor, subscriptions, FakeGateway(success=False), shop[0].id, "basic", 1, "0712345678"
    )
    assert payment.status == PaymentStatus.FAILED
    assert payment.checkout_request_id is None


@pytest.mark.asyncio
async def test_unknown_checkout_request(executor, subscriptions, shop):
    assert await complete_payment(executor, subscriptions, "ws_CO_missing", True) is None


@pytest.mark.asyncio
async def test_missing_gateway(executor, subscriptions, shop):
    with pytest.raises(ServiceUnavailableError):
        await initiate_subscription_payment(
            executor, subscriptions, None, shop[0].id, "basic", 1, "0712345678"
        )


@pytest.mark.asyncio
async def test_http_gateway_posts_stk_push():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"checkout_request_id": "ws_CO_99", "merchant_request_id": "m-9"})

    gateway = HttpPaymentGateway(
        "https://pay.example.com/api/",
        api_key="secret",
        callback_url="https://pos.example.com/api/v1/payments/callback",
        transport=httpx.MockTransport(handler),
    )
    result = await gateway.request_payment("0712 345 678", Decimal("1500.00"), "SUB1234", "Basic")

    assert result.success is True
    assert result.checkout_request_id == "ws_CO_99"
    assert captured["url"] == "https://pay.example.com/api/stkpush"
    assert captured["auth"] == "Bearer secret"
    assert captured["body"]["phone"] == "254712345678"
    assert captured["body"]["amount"] == 1500


@pytest.mark.asyncio
async def test_http_gateway_error_response():
    gateway = HttpPaymentGateway(
        "https://pay.example.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway")),
    )
    result = await gateway.request_payment("0712345678", Decimal("100"), "SUB1", "Basic")

    assert result.success is False
    assert result.message == "Gateway error 502"


@pytest.mark.asyncio
async def test_plans_are_public(client: AsyncClient, plans):
    response = await client.get("/api/v1/payments/plans")

    assert response.status_code == 200
    assert [p["plan_name"] for p in response.json()] == ["trial", "basic", "premium"]


@pytest.mark.asyncio
async def test_initiate_without_gateway(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/payments/initiate",
        headers=admin_headers,
        json={"plan_name": "basic", "months": 1, "phone": "0712345678"},
    )
    assert response.status_code == 503


class TestPaymentsApi:
    """Payment flow over HTTP with a fake gateway."""

    @pytest_asyncio.fixture
    async def gateway(self):
        return FakeGateway()

    @pytest.mark.asyncio
    async def test_suspended_tenant_can_pay_and_resume(self, client: AsyncClient, executor, shop, admin_headers):
        tenant, _ = shop
        await expire_trial(executor, tenant.id, days_ago=10)
        await SubscriptionService(executor).is_subscription_active(tenant.id)

        initiated = await client.post(
            "/api/v1/payments/initiate",
            headers=admin_headers,
            json={"plan_name": "basic", "months": 1, "phone": "0712345678"},
        )
        assert initiated.status_code == 201
        payment = initiated.json()
        assert payment["status"] == "pending"
        assert payment["currency"] == "KES"

        callback = await client.post(
            "/api/v1/payments/callback",
            json={"checkout_request_id": payment["checkout_request_id"], "success": True, "result_code": "0"},
        )
        assert callback.status_code == 200
        assert callback.json()["message"] == "Callback processed"

        status = await client.get(f"/api/v1/payments/status/{payment['id']}", headers=admin_headers)
        assert status.json()["status"] == "completed"

        products = await client.get("/api/v1/products", headers=admin_headers)
        assert products.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_callback_acknowledged(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payments/callback", json={"checkout_request_id": "nope", "success": True}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Unknown checkout request"

    @pytest.mark.asyncio
    async def test_cashier_cannot_initiate(self, client: AsyncClient, cashier_headers):
        response = await client.post(
            "/api/v1/payments/initiate",
            headers=cashier_headers,
            json={"plan_name": "basic", "months": 1, "phone": "0712345678"},
        )
        assert response.status_code == 403
