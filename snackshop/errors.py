"""
Common Error Constants

Centralized user-facing messages to avoid string duplication.
"""

# Cart item errors
MSG_INVALID_PRODUCT = "Invalid product."
MSG_INVALID_QUANTITY = "Quantity must be a positive whole number."
MSG_ITEM_REMOVED = "Item removed from cart."
MSG_ITEM_ADDED = "✓ {name} added to cart!"

# Cart lifecycle
MSG_CART_CLEARED = "Cart cleared."
MSG_CART_EMPTY = "Your cart is empty!"
MSG_CONFIRM_CLEAR = "Are you sure you want to clear your cart?"

# Discount codes
MSG_DISCOUNT_CODE_REQUIRED = "Please enter a discount code."
MSG_DISCOUNT_CODE_INVALID = "Invalid discount code."
MSG_DISCOUNT_CODE_APPLIED = "Discount code {code} applied!"

# Checkout
MSG_LOGIN_REQUIRED = "Please log in to proceed with checkout."
MSG_ORDER_FAILED = "Failed to place order. Please try again."
MSG_ORDER_PLACED = "Order placed successfully!"

# Storage
ERROR_STORAGE_UNAVAILABLE = "Cart storage unavailable"


class CartStorageError(Exception):
    """Raised by storage backends when the durable store cannot be reached."""


class OrderSubmissionError(Exception):
    """Raised when the order API rejects or cannot receive an order."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
