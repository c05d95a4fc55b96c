"""Connection pool registry tests."""
import pytest
from sqlalchemy import text

from smartpos.core.database import (
    TenantEngineRegistry,
    _normalize_async_database_url,
    generate_tenant_schema,
    validate_schema_name,
)
from smartpos.core.exceptions import InvalidSchemaNameError


@pytest.fixture
def small_registry(tmp_path):
    return TenantEngineRegistry(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}", max_tenant_engines=2)


@pytest.mark.asyncio
async def test_shared_schema_uses_public_engine(registry):
    assert await registry.get_engine(None) is registry.public_engine
    assert await registry.get_engine() is registry.public_engine


@pytest.mark.asyncio
async def test_engine_cached_per_schema(registry):
    first = await registry.get_engine("tenant_alpha")
    again = await registry.get_engine("tenant_alpha")
    other = await registry.get_engine("tenant_beta")

    assert first is again
    assert first is not other
    assert registry.tenant_schemas == ["tenant_alpha", "tenant_beta"]


@pytest.mark.asyncio
async def test_sessionmaker_cached_per_schema(registry):
    maker = await registry.get_sessionmaker("tenant_alpha")
    assert await registry.get_sessionmaker("tenant_alpha") is maker
    assert await registry.get_sessionmaker(None) is not maker


@pytest.mark.asyncio
async def test_idle_pools_evicted_least_recent_first(small_registry):
    await small_registry.get_engine("tenant_a")
    await small_registry.get_engine("tenant_b")
    # Touch a so that b becomes least recently used
    await small_registry.get_engine("tenant_a")
    await small_registry.get_engine("tenant_c")

    assert small_registry.tenant_schemas == ["tenant_a", "tenant_c"]
    await small_registry.dispose_all()


@pytest.mark.asyncio
async def test_busy_pool_is_not_evicted(small_registry):
    busy = await small_registry.get_engine("tenant_a")
    async with busy.connect() as conn:
        await conn.execute(text("SELECT 1"))
        await small_registry.get_engine("tenant_b")
        await small_registry.get_engine("tenant_c")

        assert small_registry.tenant_schemas == ["tenant_a", "tenant_c"]

    await small_registry.dispose_all()


@pytest.mark.asyncio
async def test_leased_pool_is_not_evicted(small_registry):
    """A session that has not connected yet still pins its pool."""
    async with small_registry.session("tenant_a"):
        await small_registry.get_engine("tenant_b")
        await small_registry.get_engine("tenant_c")

        assert small_registry.tenant_schemas == ["tenant_a", "tenant_c"]

    # Released, tenant_a is the least recently used again
    await small_registry.get_engine("tenant_d")
    assert small_registry.tenant_schemas == ["tenant_c", "tenant_d"]

    await small_registry.dispose_all()


@pytest.mark.asyncio
async def test_dispose_all_closes_every_pool(small_registry):
    await small_registry.get_engine("tenant_a")
    await small_registry.get_engine("tenant_b")

    await small_registry.dispose_all()

    assert small_registry.tenant_schemas == []


@pytest.mark.asyncio
async def test_invalid_schema_rejected(registry):
    for name in ("public", "Tenant_A", "tenant-a", "a; DROP TABLE tenants", "pg_temp", ""):
        with pytest.raises(InvalidSchemaNameError):
            await registry.get_engine(name)
    assert registry.tenant_schemas == []


@pytest.mark.asyncio
async def test_sqlite_tenants_get_their_own_file(registry):
    url = registry.tenant_url("tenant_alpha")
    assert url.endswith("smartpos.tenant_alpha.db")
    assert registry.tenant_url("tenant_beta") != url


def test_generated_schema_names_are_valid():
    schema = generate_tenant_schema("Mama Mboga's Shop!")
    assert schema.startswith("tenant_mama_mboga_s_shop_")
    assert validate_schema_name(schema) == schema
    assert generate_tenant_schema("Mama Mboga's Shop!") != schema


def test_database_url_normalized_to_psycopg():
    assert _normalize_async_database_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert _normalize_async_database_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert _normalize_async_database_url("postgresql+asyncpg://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert _normalize_async_database_url("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"
