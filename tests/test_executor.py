"""Schema executor and transaction coordinator tests."""
from decimal import Decimal

import pytest
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError

from smartpos.core.database import _checked_out
from smartpos.core.exceptions import BusinessRuleError, ConstraintViolationError, DataAccessError
from smartpos.core.executor import translate_error
from smartpos.models.product import Product
from smartpos.repositories import products as products_repo


def _product(barcode: str) -> Product:
    return Product(
        name="Rice 2kg",
        barcode=barcode,
        category="Groceries",
        cost_price=Decimal("150"),
        selling_price=Decimal("200"),
    )


@pytest.mark.asyncio
async def test_query_result_usable_after_release(executor, schema, product):
    result = await executor.query(schema, select(Product).where(Product.id == product.id))
    assert result.scalar_one().name == "Sugar 1kg"


@pytest.mark.asyncio
async def test_transaction_commits_all_statements(executor, schema):
    async def insert_two(session):
        session.add_all([_product("111"), _product("222")])

    await executor.run_transaction(schema, insert_two)

    products, total = await products_repo.list_products(executor, schema)
    assert total == 2


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_domain_error(executor, schema, product):
    async def empty_then_fail(session):
        await session.execute(
            update(Product).where(Product.id == product.id).values(stock_quantity=0)
        )
        raise BusinessRuleError("stop")

    with pytest.raises(BusinessRuleError):
        await executor.run_transaction(schema, empty_then_fail)

    reloaded = await products_repo.get_product(executor, schema, product.id)
    assert reloaded.stock_quantity == Decimal("10")


@pytest.mark.asyncio
async def test_integrity_error_translated_and_rolled_back(executor, schema):
    async def insert_duplicates(session):
        session.add(_product("333"))
        await session.flush()
        session.add(_product("333"))
        await session.flush()

    with pytest.raises(ConstraintViolationError) as exc_info:
        await executor.run_transaction(schema, insert_duplicates)

    assert exc_info.value.status_code == 409
    assert isinstance(exc_info.value.__cause__, IntegrityError)
    products, total = await products_repo.list_products(executor, schema)
    assert total == 0


@pytest.mark.asyncio
async def test_connection_released_after_failure(registry, executor, schema):
    async def fail(session):
        await session.execute(select(Product))
        raise BusinessRuleError("stop")

    with pytest.raises(BusinessRuleError):
        await executor.run_transaction(schema, fail)

    assert _checked_out(await registry.get_engine(schema)) == 0


@pytest.mark.asyncio
async def test_query_failure_raises_data_access_error(executor, schema):
    with pytest.raises(DataAccessError):
        await executor.query(schema, text("SELECT * FROM no_such_table"))


def test_translate_non_integrity_error():
    error = translate_error(OperationalError("SELECT 1", {}, Exception("server closed the connection")))
    assert type(error) is DataAccessError
    assert error.status_code == 500


def test_translate_integrity_error_by_message():
    error = translate_error(IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: products.name")))
    assert isinstance(error, ConstraintViolationError)
    assert error.message == "Required field is missing."
