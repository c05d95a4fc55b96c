"""Seed data script to populate a demo shop for local development."""
import asyncio
from decimal import Decimal

from sqlalchemy import select

from smartpos.core.config import settings
from smartpos.core.database import PublicBase, TenantEngineRegistry
from smartpos.core.enums import UserRole, VatType
from smartpos.core.executor import SchemaExecutor
from smartpos.models.billing import SubscriptionPlan
from smartpos.repositories import customers as customers_repo
from smartpos.repositories import products as products_repo
from smartpos.repositories import suppliers as suppliers_repo
from smartpos.repositories import tenants as tenants_repo
from smartpos.repositories import users as users_repo
from smartpos.schemas.auth import RegisterRequest
from smartpos.services.accounts import register_tenant
import smartpos.models  # noqa: F401


DEMO_EMAIL = "demo@smartpos.local"

PLANS = [
    {"plan_name": "trial", "display_name": "Free Trial", "price_monthly": Decimal("0"),
     "max_users": 2, "max_products": 100, "features": ["Point of sale", "Inventory"]},
    {"plan_name": "basic", "display_name": "Basic", "price_monthly": Decimal("1500"),
     "max_users": 3, "max_products": 1000, "features": ["Point of sale", "Inventory", "Customers"]},
    {"plan_name": "premium", "display_name": "Premium", "price_monthly": Decimal("3000"),
     "max_users": 10, "max_products": 10000, "features": ["Everything in Basic", "Suppliers", "Expenses"]},
]

PRODUCTS = [
    {"name": "Sugar 1kg", "barcode": "6161100000011", "category": "Groceries",
     "cost_price": Decimal("150"), "selling_price": Decimal("180"), "stock_quantity": Decimal("50")},
    {"name": "Milk 500ml", "barcode": "6161100000028", "category": "Dairy",
     "cost_price": Decimal("50"), "selling_price": Decimal("60"), "stock_quantity": Decimal("8"),
     "vat_type": VatType.ZERO_RATED},
    {"name": "Maize Flour 2kg", "barcode": "6161100000035", "category": "Groceries",
     "cost_price": Decimal("170"), "selling_price": Decimal("200"), "stock_quantity": Decimal("40"),
     "vat_type": VatType.EXEMPT},
    {"name": "Bar Soap", "barcode": "6161100000042", "category": "Household",
     "cost_price": Decimal("90"), "selling_price": Decimal("116"), "stock_quantity": Decimal("30")},
]


async def seed_plans(executor: SchemaExecutor):
    async def insert_missing(session):
        existing = set((await session.execute(select(SubscriptionPlan.plan_name))).scalars().all())
        for plan in PLANS:
            if plan["plan_name"] not in existing:
                session.add(SubscriptionPlan(**plan))

    await executor.run_transaction(None, insert_missing)


async def seed_data(registry: TenantEngineRegistry, executor: SchemaExecutor):
    """Seed one demo tenant with staff, products, a supplier and a customer."""
    if await tenants_repo.get_tenant_by_email(executor, DEMO_EMAIL):
        print("Data already seeded. Skipping...")
        return

    await seed_plans(executor)
    tenant, admin = await register_tenant(
        registry,
        executor,
        RegisterRequest(
            business_name="Demo Mini Mart",
            business_email=DEMO_EMAIL,
            business_phone="0712345678",
            admin_username="admin",
            admin_password="admin123",
            admin_full_name="Admin User",
        ),
    )
    print(f"Created tenant: {tenant.business_name} (schema: {tenant.tenant_schema})")

    for username, role in (("manager", UserRole.MANAGER), ("cashier", UserRole.CASHIER)):
        account = await users_repo.create_user(
            executor,
            tenant,
            {"username": username, "password": f"{username}123", "full_name": username.title(), "role": role},
        )
        print(f"Created user: {account.username} (Role: {account.role.value})")

    schema = tenant.tenant_schema
    for product in PRODUCTS:
        await products_repo.create_product(executor, schema, product)
    print(f"Created {len(PRODUCTS)} products")

    await suppliers_repo.create_supplier(
        executor, schema, {"name": "Wholesale Distributors Ltd", "phone": "0722000111", "payment_terms": "30 days"}
    )
    await customers_repo.create_customer(executor, schema, {"name": "Jane Wanjiku", "phone": "0733000222"})

    print("\n✅ Seed data created successfully!")
    print("\n📝 Test Credentials (business email: demo@smartpos.local):")
    print("   Admin:   admin / admin123")
    print("   Manager: manager / manager123")
    print("   Cashier: cashier / cashier123")


async def main():
    """Main entry point."""
    registry = TenantEngineRegistry.from_settings(settings)
    executor = SchemaExecutor(registry)
    # Create shared tables if they don't exist (for local development)
    async with registry.public_engine.begin() as conn:
        await conn.run_sync(PublicBase.metadata.create_all)

    try:
        await seed_data(registry, executor)
    finally:
        await registry.dispose_all()


if __name__ == "__main__":
    asyncio.run(main())
