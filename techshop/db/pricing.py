# techshop/db/pricing.py
from decimal import Decimal
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from techshop.db.models import Product

ZERO = Decimal("0.00")


def line_total(price, quantity: int) -> Decimal:
    return Decimal(str(price)) * quantity


async def calculate_total(db: AsyncSession, items: Dict[int, int]) -> Decimal:
    """
    Sum of current price * quantity over `{product_id: quantity}`.

    Prices are read when this runs, not when the items were collected.
    Product IDs with no catalog row add nothing.
    """
    total = ZERO
    if not items:
        return total

    result = await db.execute(select(Product.id, Product.price).filter(Product.id.in_(list(items))))
    prices = {product_id: price for product_id, price in result.all()}

    for product_id, quantity in items.items():
        price = prices.get(product_id)
        if price is not None:
            total += line_total(price, quantity)
    return total
