"""Database engines, declarative bases and the per-tenant pool registry.

Two declarative bases:
  - PublicBase  -> tables in the shared `public` schema (tenants, logins, billing)
  - TenantBase  -> tables duplicated into every tenant schema (products, sales, ...)

`TenantEngineRegistry` owns one engine (connection pool) for the shared schema
and lazily creates one per tenant schema. It lives on `app.state`, never as
module-level state.
"""
import re
import secrets
from collections import Counter, OrderedDict
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import MetaData, Enum as SQLEnum, event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from smartpos.core.exceptions import InvalidSchemaNameError
from smartpos.core.logging import get_logger


logger = get_logger(__name__)

SCHEMA_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")
RESERVED_SCHEMAS = {"public", "information_schema", "pg_catalog", "pg_toast"}


def _normalize_async_database_url(database_url: str) -> str:
    """Normalize async database URL to installed async driver(s)."""
    # Accept legacy asyncpg URLs and run with psycopg driver (psycopg 3)
    if database_url.startswith("postgresql+asyncpg://"):
        return database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://", 1)
    
    # Accept legacy heroku-style postgres:// URLs and ensure psycopg driver
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+psycopg://", 1)
        
    # Ensure plain postgresql:// uses the installed psycopg (v3) driver
    if database_url.startswith("postgresql://") and "+psycopg" not in database_url:
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
        
    return database_url


def validate_schema_name(schema: str) -> str:
    """Return `schema` if it is a safe tenant identifier, else raise."""
    if not isinstance(schema, str) or not SCHEMA_NAME_PATTERN.match(schema):
        raise InvalidSchemaNameError(f"Invalid tenant schema name: {schema!r}")
    if schema in RESERVED_SCHEMAS or schema.startswith("pg_"):
        raise InvalidSchemaNameError(f"Reserved schema name: {schema!r}")
    return schema


def generate_tenant_schema(business_name: str) -> str:
    """Build a server-side schema name such as `tenant_mama_mboga_1a2b3c4d`."""
    clean = re.sub(r"[^a-z0-9]", "_", business_name.lower())
    clean = re.sub(r"_+", "_", clean).strip("_")[:30]
    return validate_schema_name(f"tenant_{clean}_{secrets.token_hex(4)}")


# Naming convention for constraints
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


class PublicBase(DeclarativeBase):
    """Models that live in the shared `public` schema only."""
    metadata = MetaData(naming_convention=naming_convention)


class TenantBase(DeclarativeBase):
    """Models duplicated into every tenant schema."""
    metadata = MetaData(naming_convention=naming_convention)


def str_enum(enum_cls, length: int = 20) -> SQLEnum:
    """Store a str Enum by value in a VARCHAR column (no native type per schema)."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
    )


def _checked_out(engine: AsyncEngine) -> int:
    checkedout = getattr(engine.sync_engine.pool, "checkedout", None)
    return checkedout() if checkedout else 0


class TenantEngineRegistry:
    """Shared engine plus an LRU-bounded map of per-schema engines."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 10,
        tenant_pool_size: int = 5,
        tenant_max_overflow: int = 5,
        pool_timeout: int = 2,
        connect_timeout: int = 2,
        pool_recycle: int = 30,
        max_tenant_engines: int = 50,
        echo: bool = False,
    ):
        self.database_url = _normalize_async_database_url(database_url)
        self._url = make_url(self.database_url)
        self.pool_timeout = pool_timeout
        self.connect_timeout = connect_timeout
        self.pool_recycle = pool_recycle
        self.tenant_pool_size = tenant_pool_size
        self.tenant_max_overflow = tenant_max_overflow
        self.max_tenant_engines = max_tenant_engines
        self.echo = echo

        self._tenant_engines: "OrderedDict[str, AsyncEngine]" = OrderedDict()
        self._sessionmakers: dict[Optional[str], async_sessionmaker] = {}
        # Open leases per tenant schema; a leased pool is never evicted.
        self._leases: Counter = Counter()
        # The shared pool is created eagerly; no connection is opened yet.
        self._public_engine = self._create_engine(
            self.database_url, pool_size=pool_size, max_overflow=max_overflow
        )

    @classmethod
    def from_settings(cls, settings) -> "TenantEngineRegistry":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            tenant_pool_size=settings.TENANT_POOL_SIZE,
            tenant_max_overflow=settings.TENANT_MAX_OVERFLOW,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
            connect_timeout=settings.DATABASE_CONNECT_TIMEOUT,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
            max_tenant_engines=settings.MAX_TENANT_POOLS,
            echo=settings.DEBUG,
        )

    @property
    def dialect_name(self) -> str:
        return self._url.get_backend_name()

    @property
    def is_postgresql(self) -> bool:
        return self.dialect_name == "postgresql"

    @property
    def public_engine(self) -> AsyncEngine:
        return self._public_engine

    @property
    def tenant_schemas(self) -> list[str]:
        """Cached tenant schemas, least recently used first."""
        return list(self._tenant_engines)

    def tenant_url(self, schema: str) -> str:
        """Database URL serving `schema`.

        PostgreSQL tenants share the database and differ by search_path.
        SQLite has no schemas, so each tenant gets its own database file
        beside the shared one (or a private in-memory database).
        """
        if self.is_postgresql:
            return self.database_url
        database = self._url.database
        if not database or database == ":memory:":
            return self.database_url
        path = Path(database)
        tenant_path = path.with_name(f"{path.stem}.{schema}{path.suffix or '.db'}")
        return self._url.set(database=str(tenant_path)).render_as_string(hide_password=False)

    def _create_engine(
        self,
        url: str,
        *,
        pool_size: int,
        max_overflow: int,
        schema: Optional[str] = None,
    ) -> AsyncEngine:
        engine_kwargs = {
            "echo": self.echo,
            "pool_pre_ping": True,
        }
        if url.startswith("sqlite"):
            engine = create_async_engine(url, **engine_kwargs)

            @event.listens_for(engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            return engine

        connect_args = {"connect_timeout": self.connect_timeout}
        if schema is not None:
            # Default namespace for every connection of this pool
            connect_args["options"] = f"-csearch_path={schema},public"
        return create_async_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=self.pool_timeout,
            pool_recycle=self.pool_recycle,
            connect_args=connect_args,
            **engine_kwargs,
        )

    async def get_engine(self, schema: Optional[str] = None) -> AsyncEngine:
        """Return the shared engine for `None`, else the cached tenant engine."""
        if schema is None:
            return self._public_engine

        schema = validate_schema_name(schema)
        engine = self._tenant_engines.get(schema)
        if engine is not None:
            self._tenant_engines.move_to_end(schema)
            return engine

        engine = self._create_engine(
            self.tenant_url(schema),
            pool_size=self.tenant_pool_size,
            max_overflow=self.tenant_max_overflow,
            schema=schema,
        )
        self._tenant_engines[schema] = engine
        logger.info(f"Created connection pool for schema {schema}", extra={"tenant_schema": schema})
        await self._evict_idle_engines(keep=schema)
        return engine

    async def get_sessionmaker(self, schema: Optional[str] = None) -> async_sessionmaker:
        engine = await self.get_engine(schema)
        maker = self._sessionmakers.get(schema)
        if maker is None:
            maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            self._sessionmakers[schema] = maker
        return maker

    @asynccontextmanager
    async def lease(self, schema: Optional[str] = None) -> AsyncIterator[AsyncEngine]:
        """Hold the engine for `schema` so eviction skips it until release.

        The lease is taken before the first await, so a pool handed out
        here cannot be disposed while the caller is still opening a
        connection on it.
        """
        if schema is not None:
            schema = validate_schema_name(schema)
            self._leases[schema] += 1
        try:
            yield await self.get_engine(schema)
        finally:
            if schema is not None:
                self._leases[schema] -= 1
                if self._leases[schema] <= 0:
                    del self._leases[schema]

    @asynccontextmanager
    async def session(self, schema: Optional[str] = None) -> AsyncIterator[AsyncSession]:
        async with self.lease(schema):
            maker = await self.get_sessionmaker(schema)
            async with maker() as session:
                yield session

    async def _evict_idle_engines(self, keep: str) -> None:
        while len(self._tenant_engines) > self.max_tenant_engines:
            victim = next(
                (
                    name for name, engine in self._tenant_engines.items()
                    if name != keep and not self._leases.get(name) and _checked_out(engine) == 0
                ),
                None,
            )
            if victim is None:
                logger.warning(
                    f"All {len(self._tenant_engines)} tenant pools busy; exceeding capacity "
                    f"{self.max_tenant_engines}"
                )
                return
            engine = self._tenant_engines.pop(victim)
            self._sessionmakers.pop(victim, None)
            await engine.dispose()
            logger.info(f"Evicted idle connection pool for schema {victim}", extra={"tenant_schema": victim})

    async def dispose_all(self) -> None:
        """Drain every tenant pool, then the shared pool."""
        while self._tenant_engines:
            schema, engine = self._tenant_engines.popitem(last=False)
            self._sessionmakers.pop(schema, None)
            await engine.dispose()
            logger.info(f"Closed pool for schema {schema}", extra={"tenant_schema": schema})
        self._sessionmakers.pop(None, None)
        await self._public_engine.dispose()
        logger.info("Closed shared pool")
