# techshop/db/orders.py
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from techshop.config import STRICT_STOCK
from techshop.db.models import Order, OrderItem, Product, User
from techshop.db.pricing import ZERO, calculate_total, line_total
from techshop.db.products import decrement_stock
from techshop.db.results import (
    OpResult, ok, fail,
    BUYER_NOT_FOUND, CART_EMPTY, ORDER_NOT_FOUND, STORE_ERROR, TOTAL_ERROR,
)
from techshop.db.schemas import DashboardStats, OrderBase, OrderItemDetail
from techshop.db.users import get_buyer
from techshop.logging_config import get_logger

log = get_logger(__name__)


async def create_order_in_transaction(db: AsyncSession, cart: Dict[int, int], buyer_id: int,
                                      strict_stock: bool = False) -> OpResult:
    """
    Write an order, its lines and the stock decrements into the open session.

    Nothing is committed or rolled back here; the caller owns the unit of
    work, so the order can share a transaction with other writes. On success
    the value is the new order ID, on failure it is 0.
    """
    if not cart:
        return fail(CART_EMPTY, 0)

    buyer = await get_buyer(db, buyer_id)
    if buyer is None:
        return fail(BUYER_NOT_FOUND, 0)

    total = await calculate_total(db, cart)
    # Zero means no line resolved to a catalog product, not a free order
    if total == ZERO:
        return fail(TOTAL_ERROR, 0)

    new_order = Order(total=total, created_at=datetime.now(), user_id=buyer.id)
    db.add(new_order)
    await db.flush()

    for product_id, quantity in cart.items():
        db.add(OrderItem(order_id=new_order.id, product_id=product_id, quantity=quantity))
        applied = await decrement_stock(db, product_id, quantity, strict=strict_stock)
        if strict_stock and not applied:
            return fail(f"Insufficient stock for product {product_id}", 0)

    await db.flush()
    return ok(f"Order created. Total: {total}", new_order.id)


async def create_order(db: AsyncSession, cart: Dict[int, int], buyer_id: int,
                       strict_stock: Optional[bool] = None) -> OpResult:
    """
    Turn a cart snapshot into an order as one all-or-nothing unit.

    Returns `(success, message, order_id)`; `order_id` is 0 on failure and
    no rows are left behind.
    """
    if strict_stock is None:
        strict_stock = STRICT_STOCK

    try:
        result = await create_order_in_transaction(db, dict(cart), buyer_id, strict_stock)
        if not result.success:
            await db.rollback()
            log.warning("Order for buyer %s rejected: %s", buyer_id, result.message)
            return result
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Order creation failed for buyer %s", buyer_id)
        return fail(STORE_ERROR, 0)

    log.info("Order %s created for buyer %s", result.value, buyer_id)
    return result


# Order header by ID
async def get_order_by_id(db: AsyncSession, order_id: int) -> OpResult:
    if not isinstance(order_id, int) or order_id <= 0:
        return fail(ORDER_NOT_FOUND)

    try:
        result = await db.execute(select(Order).filter(Order.id == order_id))
        order = result.scalar_one_or_none()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not read order %s", order_id)
        return fail(STORE_ERROR)

    if order is None:
        return fail(ORDER_NOT_FOUND)
    return ok("Order found", OrderBase.model_validate(order))


async def _order_item_details(db: AsyncSession, order_ids: List[int]) -> Dict[int, List[OrderItemDetail]]:
    result = await db.execute(
        select(OrderItem, Product.name, Product.price)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(OrderItem.order_id.in_(order_ids))
        .order_by(OrderItem.id)
    )
    details: Dict[int, List[OrderItemDetail]] = {order_id: [] for order_id in order_ids}
    for item, name, price in result.all():
        details[item.order_id].append(OrderItemDetail(
            id=item.id,
            order_id=item.order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            product_name=name,
            unit_price=price,
            line_total=line_total(price, item.quantity),
        ))
    return details


async def get_order_items(db: AsyncSession, order_id: int) -> OpResult:
    """Lines of an order with product name and current unit price, for invoices and emails."""
    found = await get_order_by_id(db, order_id)
    if not found.success:
        return found

    try:
        details = await _order_item_details(db, [order_id])
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not read items of order %s", order_id)
        return fail(STORE_ERROR)
    return ok("Order items found", details[order_id])


async def get_orders_by_user_id(db: AsyncSession, user_id: int) -> List[Tuple[OrderBase, List[OrderItemDetail]]]:
    """All orders of a user, newest first, each with its lines."""
    try:
        result = await db.execute(
            select(Order).filter(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
        )
        orders = result.scalars().all()
        if not orders:
            return []
        details = await _order_item_details(db, [order.id for order in orders])
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not read orders of user %s", user_id)
        return []

    return [(OrderBase.model_validate(order), details[order.id]) for order in orders]


async def get_dashboard_stats(db: AsyncSession) -> DashboardStats:
    try:
        total_products = (await db.execute(select(func.count(Product.id)))).scalar_one()
        total_users = (await db.execute(select(func.count(User.id)))).scalar_one()
        total_orders = (await db.execute(select(func.count(Order.id)))).scalar_one()
        revenue = (await db.execute(select(func.sum(Order.total)))).scalar_one()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not compute dashboard stats")
        return DashboardStats()

    return DashboardStats(
        total_products=total_products,
        total_users=total_users,
        total_orders=total_orders,
        total_revenue=Decimal(str(revenue or 0)),
    )


# Admin panel: every order, newest first
async def get_all_orders(db: AsyncSession) -> List[OrderBase]:
    try:
        result = await db.execute(select(Order).order_by(Order.created_at.desc(), Order.id.desc()))
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not list orders")
        return []
    return [OrderBase.model_validate(order) for order in result.scalars().all()]


async def delete_order(db: AsyncSession, order_id: int) -> OpResult:
    """Remove an order and its lines. Stock is not given back."""
    try:
        await db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        result = await db.execute(delete(Order).where(Order.id == order_id))
        if result.rowcount == 0:
            await db.rollback()
            return fail(ORDER_NOT_FOUND)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not delete order %s", order_id)
        return fail(STORE_ERROR)

    log.info("Order %s deleted", order_id)
    return ok("Order deleted", order_id)
