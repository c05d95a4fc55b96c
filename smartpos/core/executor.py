"""Schema-scoped statement execution and the transaction coordinator."""
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Result
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.database import TenantEngineRegistry, validate_schema_name
from smartpos.core.exceptions import ConstraintViolationError, DataAccessError
from smartpos.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")
Work = Callable[[AsyncSession], Awaitable[T]]

_STATEMENT_PREFIX = 80

# SQLSTATE -> user facing message for integrity failures
_INTEGRITY_MESSAGES = {
    "23505": "Duplicate entry. This record already exists.",
    "23503": "Referenced record does not exist.",
    "23502": "Required field is missing.",
}


def translate_error(exc: SQLAlchemyError) -> DataAccessError:
    """Map a SQLAlchemy failure onto the data-access error taxonomy."""
    if isinstance(exc, IntegrityError):
        sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        message = _INTEGRITY_MESSAGES.get(sqlstate)
        if message is None:
            detail = str(exc.orig).lower()
            if "unique" in detail:
                message = _INTEGRITY_MESSAGES["23505"]
            elif "foreign key" in detail:
                message = _INTEGRITY_MESSAGES["23503"]
            elif "not null" in detail:
                message = _INTEGRITY_MESSAGES["23502"]
            else:
                message = "Constraint violation."
        return ConstraintViolationError(message)
    return DataAccessError("Database operation failed.")


def _prefix(statement: Any) -> str:
    return " ".join(str(statement).split())[:_STATEMENT_PREFIX]


class SchemaExecutor:
    """Routes statements to the pool of a tenant schema (or the shared one).

    ``query`` runs one statement with autocommit semantics; ``run_transaction``
    runs a caller-supplied coroutine on a single session inside BEGIN/COMMIT.
    """

    def __init__(self, registry: TenantEngineRegistry, *, debug: bool = False):
        self.registry = registry
        self.debug = debug

    async def _enter_schema(self, session: AsyncSession, schema: Optional[str]) -> None:
        if schema is None or not self.registry.is_postgresql:
            return
        preparer = session.bind.dialect.identifier_preparer
        quoted = preparer.quote_identifier(validate_schema_name(schema))
        await session.execute(text(f"SET search_path TO {quoted}, public"))

    def _log_success(self, schema: Optional[str], statement: Any, started: float) -> None:
        if not self.debug:
            return
        logger.debug(
            "Executed statement",
            extra={
                "tenant_schema": schema,
                "statement": _prefix(statement),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )

    def _log_failure(self, schema: Optional[str], statement: Any, started: float, exc: Exception) -> None:
        extra = {
            "tenant_schema": schema,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        }
        if self.debug:
            extra["statement"] = _prefix(statement)
        logger.error(f"Statement failed: {type(exc).__name__}", extra=extra)

    async def query(
        self,
        schema: Optional[str],
        statement: Any,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Result:
        """Execute one statement against `schema` and return its buffered result."""
        started = time.perf_counter()
        async with self.registry.session(schema) as session:
            try:
                await self._enter_schema(session, schema)
                result = await session.execute(statement, params)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                self._log_failure(schema, statement, started, e)
                raise translate_error(e) from e
        self._log_success(schema, statement, started)
        return result

    async def run_transaction(self, schema: Optional[str], work: Work[T]) -> T:
        """Run `work(session)` atomically on one connection of `schema`'s pool."""
        started = time.perf_counter()
        async with self.registry.session(schema) as session:
            try:
                async with session.begin():
                    await self._enter_schema(session, schema)
                    result = await work(session)
            except SQLAlchemyError as e:
                self._log_failure(schema, getattr(work, "__name__", "transaction"), started, e)
                raise translate_error(e) from e
            except Exception as e:
                logger.warning(
                    f"Transaction rolled back: {type(e).__name__}: {e}",
                    extra={"tenant_schema": schema},
                )
                raise
        self._log_success(schema, getattr(work, "__name__", "transaction"), started)
        return result
