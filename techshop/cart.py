"""
Session cart and the rules for changing it.

The cart is a `{product_id: quantity}` mapping owned by the user's session.
Every quantity stays a positive integer no larger than
`MAX_UNITS_PER_PRODUCT`; a request that would break that is rejected as a
whole and leaves the cart as it was.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from techshop.db.pricing import ZERO, calculate_total
from techshop.db.products import check_stock
from techshop.db.results import OpResult, ok, fail, NOT_IN_CART
from techshop.logging_config import get_logger

log = get_logger(__name__)

MAX_UNITS_PER_PRODUCT = 5
SESSION_KEY = "cart"


@dataclass
class Cart:
    items: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_session(cls, session) -> "Cart":
        """Read the cart stored under `SESSION_KEY`; malformed entries are dropped."""
        stored = session.get(SESSION_KEY) or {}
        items = {}
        for key, quantity in stored.items():
            try:
                product_id = int(key)
            except (TypeError, ValueError):
                continue
            if isinstance(quantity, int) and not isinstance(quantity, bool) and 0 < quantity <= MAX_UNITS_PER_PRODUCT:
                items[product_id] = quantity
        return cls(items)

    def save(self, session):
        # Session payloads are JSON, so keys become strings
        session[SESSION_KEY] = {str(product_id): quantity for product_id, quantity in self.items.items()}

    def quantity_of(self, product_id: int) -> int:
        return self.items.get(product_id, 0)

    def is_empty(self) -> bool:
        return not self.items

    def __len__(self):
        return len(self.items)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


async def add_to_cart(db: AsyncSession, cart: Cart, product_id: int, quantity: int) -> OpResult:
    """
    Add `quantity` units of a product. Value on success: the new line quantity.

    Stock is checked against the requested quantity alone, then the
    per-product ceiling against what the cart already holds.
    """
    if not _is_positive_int(quantity):
        return fail("Quantity must be a positive integer")

    stock = await check_stock(db, product_id, quantity)
    if not stock.success:
        return stock

    current = cart.quantity_of(product_id)
    total = current + quantity
    if total > MAX_UNITS_PER_PRODUCT:
        return fail(
            f"Cannot exceed the limit of {MAX_UNITS_PER_PRODUCT} units per product. "
            f"Current: {current}, trying to add: {quantity}",
            current,
        )

    cart.items[product_id] = total
    return ok(f"Product added to cart. Total quantity: {total}", total)


def remove_from_cart(cart: Cart, product_id: int) -> OpResult:
    if product_id in cart.items:
        del cart.items[product_id]
        return ok("Product removed from cart")
    return fail(NOT_IN_CART)


def get_cart_contents(cart: Cart) -> Dict[int, int]:
    return dict(cart.items)


def clear_cart(cart: Cart) -> OpResult:
    cart.items.clear()
    return ok("Cart cleared")


async def get_cart_total(db: AsyncSession, cart: Cart) -> Decimal:
    try:
        return await calculate_total(db, cart.items)
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not price cart")
        return ZERO
