# techshop/db/results.py
from typing import Any, NamedTuple

# Failure messages callers may branch on
STORE_ERROR = "Error accessing the store"
PRODUCT_NOT_FOUND = "Product not found"
NOT_IN_CART = "Product not found in the cart"
CART_EMPTY = "Cart is empty"
BUYER_NOT_FOUND = "Buyer not found"
USER_NOT_FOUND = "User not found"
ORDER_NOT_FOUND = "Order not found"
TOTAL_ERROR = "Could not compute order total"

NOT_FOUND_MESSAGES = frozenset({
    PRODUCT_NOT_FOUND, NOT_IN_CART, BUYER_NOT_FOUND, USER_NOT_FOUND, ORDER_NOT_FOUND,
})


class OpResult(NamedTuple):
    """Outcome of a public core operation: `(success, message, value)`."""

    success: bool
    message: str
    value: Any = None


def ok(message: str, value: Any = None) -> OpResult:
    return OpResult(True, message, value)


def fail(message: str, value: Any = None) -> OpResult:
    return OpResult(False, message, value)
