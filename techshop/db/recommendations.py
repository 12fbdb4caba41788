# techshop/db/recommendations.py
"""
Product recommendations from historical sales.

Products are ranked by units sold, ties broken by product name. Ranking is
best effort: a failing query is logged and shows up as no recommendations.
"""

from typing import List, Optional, Tuple

from kungfu import Error, Ok, Result
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from techshop.db.models import Order, OrderItem, Product
from techshop.db.schemas import ProductBase
from techshop.logging_config import get_logger

log = get_logger(__name__)

Ranking = List[Tuple[ProductBase, int]]


async def _rank(db: AsyncSession, limit: int, buyer_id: Optional[int] = None) -> Result[Ranking, str]:
    total_sold = func.sum(OrderItem.quantity).label("total_sold")
    query = (
        select(Product, total_sold)
        .select_from(OrderItem)
        .join(Product, Product.id == OrderItem.product_id)
    )
    if buyer_id is not None:
        query = query.join(Order, Order.id == OrderItem.order_id).filter(Order.user_id == buyer_id)
    query = (
        query.group_by(Product.id)
        .order_by(total_sold.desc(), Product.name.asc())
        .limit(limit)
    )

    try:
        rows = (await db.execute(query)).all()
    except SQLAlchemyError as e:
        await db.rollback()
        return Error(str(e))

    return Ok([(ProductBase.model_validate(product), int(sold or 0)) for product, sold in rows])


def _or_empty(result: Result[Ranking, str], what: str) -> Ranking:
    match result:
        case Ok(ranking):
            return ranking
        case Error(reason):
            log.error("Recommendation query failed (%s): %s", what, reason)
            return []


async def top_selling(db: AsyncSession, limit: int = 3) -> Ranking:
    """Best sellers across the store as `(product, units_sold)` pairs."""
    if limit <= 0:
        return []
    return _or_empty(await _rank(db, limit), "top selling")


async def top_for_buyer(db: AsyncSession, buyer_id: Optional[int], limit: int = 3) -> Ranking:
    """Products a buyer has bought most, same ordering as `top_selling`."""
    if buyer_id is None or limit <= 0:
        return []
    return _or_empty(await _rank(db, limit, buyer_id), f"buyer {buyer_id}")
