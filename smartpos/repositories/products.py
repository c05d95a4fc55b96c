"""Product catalogue and stock-level queries."""
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smartpos.core.enums import RecordStatus, StockOperation
from smartpos.core.exceptions import ConstraintViolationError, InsufficientStockError, NotFoundError
from smartpos.core.executor import SchemaExecutor
from smartpos.core.logging import get_logger
from smartpos.models.product import Product
from smartpos.repositories.base import build_update_values, paginate


logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "name", "barcode", "category", "subcategory", "cost_price", "selling_price",
    "wholesale_price", "vat_type", "unit_of_measure", "reorder_level",
    "expiry_tracking", "description", "status",
)


async def _barcode_taken(session: AsyncSession, barcode: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Product.id).where(Product.barcode == barcode)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return (await session.scalar(stmt)) is not None


async def create_product(executor: SchemaExecutor, schema: str, data: dict) -> Product:
    """Insert a product. Barcodes are unique within the tenant."""
    async def insert_product(session: AsyncSession) -> Product:
        if await _barcode_taken(session, data["barcode"]):
            raise ConstraintViolationError("Product with this barcode already exists")
        product = Product(**data)
        session.add(product)
        await session.flush()
        return product

    product = await executor.run_transaction(schema, insert_product)
    logger.info(f"Product created: {product.id} ({product.barcode})", extra={"tenant_schema": schema})
    return product


async def get_product(executor: SchemaExecutor, schema: str, product_id: str) -> Product:
    result = await executor.query(schema, select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def get_product_by_barcode(executor: SchemaExecutor, schema: str, barcode: str) -> Product:
    """Active product with `barcode` (till scanning)."""
    result = await executor.query(
        schema,
        select(Product).where(
            Product.barcode == barcode,
            Product.status == RecordStatus.ACTIVE,
        ),
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def search_products(
    executor: SchemaExecutor,
    schema: str,
    term: str,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[Sequence[Product], int]:
    pattern = f"%{term}%"
    stmt = (
        select(Product)
        .where(
            Product.status == RecordStatus.ACTIVE,
            or_(
                Product.name.ilike(pattern),
                Product.barcode.ilike(pattern),
                Product.category.ilike(pattern),
            ),
        )
        .order_by(Product.name)
    )
    return await paginate(executor, schema, stmt, page, page_size)


async def list_products(
    executor: SchemaExecutor,
    schema: str,
    page: int = 1,
    page_size: int = 20,
    category: Optional[str] = None,
    low_stock: bool = False,
) -> Tuple[Sequence[Product], int]:
    stmt = select(Product).where(Product.status == RecordStatus.ACTIVE)
    if category:
        stmt = stmt.where(Product.category == category)
    if low_stock:
        stmt = stmt.where(Product.stock_quantity <= Product.reorder_level)
    stmt = stmt.order_by(Product.name)
    return await paginate(executor, schema, stmt, page, page_size)


async def update_product(executor: SchemaExecutor, schema: str, product_id: str, payload: dict) -> Product:
    values = build_update_values(payload, UPDATABLE_FIELDS)

    async def apply_update(session: AsyncSession) -> Product:
        product = await session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if "barcode" in values and await _barcode_taken(session, values["barcode"], product_id):
            raise ConstraintViolationError("Product with this barcode already exists")
        for field, value in values.items():
            setattr(product, field, value)
        await session.flush()
        return product

    return await executor.run_transaction(schema, apply_update)


async def delete_product(executor: SchemaExecutor, schema: str, product_id: str) -> None:
    """Soft delete; sale history keeps referencing the row."""
    result = await executor.query(
        schema,
        update(Product)
        .where(Product.id == product_id)
        .values(status=RecordStatus.INACTIVE)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount == 0:
        raise NotFoundError("Product not found")
    logger.info(f"Product deactivated: {product_id}", extra={"tenant_schema": schema})


async def get_categories(executor: SchemaExecutor, schema: str) -> List[dict]:
    result = await executor.query(
        schema,
        select(Product.category, func.count(Product.id).label("product_count"))
        .where(Product.status == RecordStatus.ACTIVE)
        .group_by(Product.category)
        .order_by(Product.category),
    )
    return [dict(row) for row in result.mappings().all()]


async def adjust_stock(
    executor: SchemaExecutor,
    schema: str,
    product_id: str,
    quantity: Decimal,
    operation: StockOperation,
) -> Product:
    """Manual stock correction in a single guarded statement."""
    stmt = update(Product).where(Product.id == product_id)
    if StockOperation(operation) is StockOperation.ADD:
        stmt = stmt.values(stock_quantity=Product.stock_quantity + quantity)
    else:
        stmt = stmt.where(Product.stock_quantity >= quantity).values(
            stock_quantity=Product.stock_quantity - quantity
        )
    result = await executor.query(schema, stmt.execution_options(synchronize_session=False))
    if result.rowcount == 0:
        product = await get_product(executor, schema, product_id)
        logger.warning(
            f"Stock adjustment rejected for {product_id}: have {product.stock_quantity}, remove {quantity}",
            extra={"tenant_schema": schema},
        )
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}. Available: {product.stock_quantity}"
        )
    return await get_product(executor, schema, product_id)


async def get_low_stock(executor: SchemaExecutor, schema: str) -> Sequence[Product]:
    """Active products at or below their reorder level, lowest stock first."""
    result = await executor.query(
        schema,
        select(Product)
        .where(
            Product.status == RecordStatus.ACTIVE,
            Product.stock_quantity <= Product.reorder_level,
        )
        .order_by(Product.stock_quantity.asc(), Product.name),
    )
    return result.scalars().all()


async def get_out_of_stock(executor: SchemaExecutor, schema: str) -> Sequence[Product]:
    result = await executor.query(
        schema,
        select(Product)
        .where(Product.status == RecordStatus.ACTIVE, Product.stock_quantity <= 0)
        .order_by(Product.name),
    )
    return result.scalars().all()


async def count_products(executor: SchemaExecutor, schema: str) -> int:
    result = await executor.query(
        schema,
        select(func.count(Product.id)).where(Product.status == RecordStatus.ACTIVE),
    )
    return result.scalar_one()
