"""Main FastAPI application."""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from smartpos.core.config import settings
from smartpos.core.database import PublicBase, TenantEngineRegistry
from smartpos.core.exceptions import SmartPOSError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import setup_logging, get_logger
from smartpos.api.v1 import router as v1_router
from smartpos.services.payments import HttpPaymentGateway
import smartpos.models  # noqa: F401  registers every table with its base


# Setup logging
setup_logging(settings.DEBUG)
logger = get_logger(__name__)


async def check_public_tables(registry: TenantEngineRegistry) -> list:
    """Names of shared tables missing from the database."""
    async with registry.public_engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    return [name for name in PublicBase.metadata.tables if name not in existing]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pool registry on startup and drain every pool on shutdown."""
    logger.info("Starting SmartPOS API")
    logger.info(f"Debug mode: {settings.DEBUG}")

    registry = TenantEngineRegistry.from_settings(settings)
    app.state.registry = registry
    app.state.executor = SchemaExecutor(registry, debug=settings.DEBUG)
    app.state.payment_gateway = HttpPaymentGateway.from_settings()
    if app.state.payment_gateway is None:
        logger.warning("PAYMENT_GATEWAY_URL not set; subscription payments disabled")

    try:
        missing = await check_public_tables(registry)
        if missing:
            logger.error(f"Missing shared tables: {missing}. Run `alembic upgrade head`.")
        else:
            logger.info("Database integrity check passed.")
    except Exception as e:
        # Not raising here to prevent boot-loop if DB is briefly unreachable
        logger.error(f"Database check failed: {e}")

    yield
    logger.info("Shutting down SmartPOS API")
    await registry.dispose_all()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-tenant point of sale API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(v1_router, prefix="/api")


@app.exception_handler(SmartPOSError)
async def smartpos_exception_handler(request: Request, exc: SmartPOSError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    content = {"detail": exc.message}
    if exc.code:
        content["code"] = exc.code
    if settings.DEBUG:
        content["error_type"] = type(exc).__name__
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors for debugging 422s."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances (e.g. from field validators)
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/api/docs",
    }
