"""Test configuration and fixtures."""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./smartpos-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")

from decimal import Decimal
from typing import AsyncGenerator, Tuple

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from smartpos.main import app
from smartpos.core.database import PublicBase, TenantEngineRegistry
from smartpos.core.dependencies import get_executor, get_payment_gateway, get_registry
from smartpos.core.enums import UserRole, VatType
from smartpos.core.executor import SchemaExecutor
from smartpos.core.security import create_access_token
from smartpos.models.billing import SubscriptionPlan
from smartpos.models.product import Product
from smartpos.models.tenant import Tenant, TenantUser
from smartpos.repositories import products as products_repo
from smartpos.repositories import users as users_repo
from smartpos.schemas.auth import RegisterRequest
from smartpos.services.accounts import register_tenant


Shop = Tuple[Tenant, TenantUser]


def bearer(account: TenantUser) -> dict:
    token = create_access_token(account.id, account.tenant_id, account.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def registry(tmp_path) -> AsyncGenerator[TenantEngineRegistry, None]:
    """Shared database plus one SQLite file per tenant under tmp_path."""
    registry = TenantEngineRegistry(
        f"sqlite+aiosqlite:///{tmp_path / 'smartpos.db'}",
        max_tenant_engines=10,
    )
    async with registry.public_engine.begin() as conn:
        await conn.run_sync(PublicBase.metadata.create_all)

    yield registry

    await registry.dispose_all()


@pytest_asyncio.fixture
async def executor(registry: TenantEngineRegistry) -> SchemaExecutor:
    return SchemaExecutor(registry)


@pytest_asyncio.fixture
async def plans(executor: SchemaExecutor) -> None:
    async def insert_plans(session):
        session.add_all([
            SubscriptionPlan(plan_name="trial", display_name="Free Trial", price_monthly=Decimal("0"), features=[]),
            SubscriptionPlan(plan_name="basic", display_name="Basic", price_monthly=Decimal("1500"), features=["pos"]),
            SubscriptionPlan(plan_name="premium", display_name="Premium", price_monthly=Decimal("3000"), features=["pos"]),
        ])

    await executor.run_transaction(None, insert_plans)


async def _register(registry, executor, business_name: str, email: str) -> Shop:
    return await register_tenant(
        registry,
        executor,
        RegisterRequest(
            business_name=business_name,
            business_email=email,
            admin_username="admin",
            admin_password="admin123",
            admin_full_name=f"{business_name} Admin",
        ),
    )


@pytest_asyncio.fixture
async def shop(registry, executor, plans) -> Shop:
    """Registered tenant and its admin."""
    return await _register(registry, executor, "Alpha Mart", "alpha@example.com")


@pytest_asyncio.fixture
async def other_shop(registry, executor, plans) -> Shop:
    return await _register(registry, executor, "Beta Stores", "beta@example.com")


@pytest_asyncio.fixture
async def schema(shop: Shop) -> str:
    return shop[0].tenant_schema


@pytest_asyncio.fixture
async def cashier(executor, shop: Shop) -> TenantUser:
    tenant, _ = shop
    return await users_repo.create_user(
        executor,
        tenant,
        {"username": "cashier", "password": "cashier123", "full_name": "Till Cashier", "role": UserRole.CASHIER},
    )


@pytest_asyncio.fixture
async def admin_headers(shop: Shop) -> dict:
    return bearer(shop[1])


@pytest_asyncio.fixture
async def cashier_headers(cashier: TenantUser) -> dict:
    return bearer(cashier)


@pytest_asyncio.fixture
async def product(executor, schema) -> Product:
    """Vatable product: 100.00 each, 10 in stock."""
    return await products_repo.create_product(
        executor,
        schema,
        {
            "name": "Sugar 1kg",
            "barcode": "6161100000011",
            "category": "Groceries",
            "cost_price": Decimal("80.00"),
            "selling_price": Decimal("100.00"),
            "stock_quantity": Decimal("10"),
            "reorder_level": Decimal("2"),
        },
    )


@pytest_asyncio.fixture
async def zero_rated_product(executor, schema) -> Product:
    """Zero-rated product: 50.00 each, 5 in stock."""
    return await products_repo.create_product(
        executor,
        schema,
        {
            "name": "Milk 500ml",
            "barcode": "6161100000028",
            "category": "Dairy",
            "cost_price": Decimal("40.00"),
            "selling_price": Decimal("50.00"),
            "stock_quantity": Decimal("5"),
            "reorder_level": Decimal("5"),
            "vat_type": VatType.ZERO_RATED,
        },
    )


@pytest_asyncio.fixture
async def gateway():
    """Overridable payment gateway; None means not configured."""
    return None


@pytest_asyncio.fixture
async def client(registry, executor, gateway) -> AsyncGenerator[AsyncClient, None]:
    """Test client wired to the per-test registry."""
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_executor] = lambda: executor
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
