# techshop/db/products.py
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from techshop.db.models import OrderItem, Product
from techshop.db.results import OpResult, ok, fail, PRODUCT_NOT_FOUND, STORE_ERROR
from techshop.logging_config import get_logger

log = get_logger(__name__)


# Single product by ID
async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
    result = await db.execute(select(Product).filter(Product.id == product_id))
    return result.scalar_one_or_none()


# All products with an optional name filter and pagination
async def get_all_products(db: AsyncSession, search: str = "", skip: int = 0, limit: int = 100) -> List[Product]:
    query = select(Product)
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    result = await db.execute(query.order_by(Product.id).offset(skip).limit(limit))
    return list(result.scalars().all())


async def get_company_products(db: AsyncSession, company_id: int) -> List[Product]:
    result = await db.execute(
        select(Product).filter(Product.company_id == company_id).order_by(Product.id)
    )
    return list(result.scalars().all())


async def get_products_by_ids(db: AsyncSession, cart_items: Dict[int, int]) -> List[Tuple[Product, int]]:
    """
    Resolve a cart mapping `{product_id: quantity}` to `(Product, quantity)` pairs.

    Products that no longer exist are skipped.
    """
    if not cart_items:
        return []

    result = await db.execute(select(Product).filter(Product.id.in_(list(cart_items))))
    products = {product.id: product for product in result.scalars().all()}
    return [
        (products[product_id], quantity)
        for product_id, quantity in cart_items.items()
        if product_id in products
    ]


async def check_stock(db: AsyncSession, product_id: int, quantity: int) -> OpResult:
    """Is there enough stock of the product for `quantity` units? Value: available stock."""
    try:
        result = await db.execute(select(Product.stock).filter(Product.id == product_id))
        available = result.scalar_one_or_none()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Stock lookup failed for product %s", product_id)
        return fail(STORE_ERROR)

    if available is None:
        return fail(PRODUCT_NOT_FOUND)
    if available < quantity:
        return fail(f"Insufficient stock. Available: {available}, requested: {quantity}", available)
    return ok("Stock available", available)


async def decrement_stock(db: AsyncSession, product_id: int, quantity: int, strict: bool = False) -> bool:
    """
    Subtract `quantity` from the product's stock inside the caller's transaction.

    The plain form subtracts unconditionally and may leave the counter negative.
    The strict form only applies when the stock still covers the quantity and
    reports whether a row was updated.
    """
    statement = update(Product).where(Product.id == product_id)
    if strict:
        statement = statement.where(Product.stock >= quantity)
    result = await db.execute(statement.values(stock=Product.stock - quantity))
    return result.rowcount > 0


def _check_product_fields(name: str, price, stock) -> Optional[str]:
    if not name or not name.strip():
        return "Product name is required"
    if len(name.strip()) > 100:
        return "Product name must be at most 100 characters"
    try:
        price = Decimal(str(price))
    except (InvalidOperation, ValueError):
        return "Price must be a number"
    if isinstance(stock, bool) or not isinstance(stock, int):
        return "Stock must be an integer"
    if price < 0 or stock < 0:
        return "Price and stock must be non-negative"
    return None


async def _owned_product(db: AsyncSession, product_id: int, company_id: Optional[int]) -> Optional[Product]:
    product = await get_product_by_id(db, product_id)
    if product is None:
        return None
    if company_id is not None and product.company_id != company_id:
        return None
    return product


# New product; value is the product ID
async def create_product(db: AsyncSession, name: str, price, stock: int, company_id: Optional[int] = None) -> OpResult:
    error = _check_product_fields(name, price, stock)
    if error:
        return fail(error)

    new_product = Product(
        name=name.strip(),
        price=Decimal(str(price)),
        stock=stock,
        company_id=company_id,
    )
    try:
        db.add(new_product)
        await db.commit()
        await db.refresh(new_product)
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not create product %r", name)
        return fail(STORE_ERROR)

    log.info("Product %s created (company %s)", new_product.id, company_id)
    return ok("Product created", new_product.id)


# Product update; sellers may only touch their own products
async def update_product(db: AsyncSession, product_id: int, name: str, price, stock: int,
                         company_id: Optional[int] = None) -> OpResult:
    error = _check_product_fields(name, price, stock)
    if error:
        return fail(error)

    try:
        product = await _owned_product(db, product_id, company_id)
        if product is None:
            return fail(PRODUCT_NOT_FOUND)

        product.name = name.strip()
        product.price = Decimal(str(price))
        product.stock = stock
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not update product %s", product_id)
        return fail(STORE_ERROR)

    return ok("Product updated", product_id)


async def can_delete_product(db: AsyncSession, product_id: int, company_id: Optional[int] = None) -> OpResult:
    """A product can be deleted only while no order line references it."""
    try:
        product = await _owned_product(db, product_id, company_id)
        if product is None:
            return fail(PRODUCT_NOT_FOUND)

        result = await db.execute(
            select(func.count(OrderItem.id)).filter(OrderItem.product_id == product_id)
        )
        sales = result.scalar_one()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not check sales of product %s", product_id)
        return fail(STORE_ERROR)

    if sales > 0:
        return fail(f"The product cannot be deleted because it has {sales} sale(s)")
    return ok("Product can be deleted")


async def delete_product(db: AsyncSession, product_id: int, company_id: Optional[int] = None) -> OpResult:
    allowed = await can_delete_product(db, product_id, company_id)
    if not allowed.success:
        return allowed

    try:
        await db.execute(delete(Product).filter(Product.id == product_id))
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not delete product %s", product_id)
        return fail(STORE_ERROR)

    log.info("Product %s deleted", product_id)
    return ok("Product deleted", product_id)
