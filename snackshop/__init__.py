"""
Snack Shop Core Module

This package contains the storefront cart infrastructure:
- cart: cart engine, pricing, storage and cross-tab sync
- db: Redis client factory
- checkout: order submission client
- notifications: user-facing notifier
- routers: FastAPI presentation adapter

Note: Imports are lazy to avoid circular dependency issues
and ensure clean module loading in serverless environments.
"""

__all__ = [
    "CartEngine",
    "get_redis",
]


def __getattr__(name):
    """Lazy attribute access for clean serverless loading."""
    if name == "CartEngine":
        from snackshop.cart import CartEngine
        return CartEngine
    elif name == "get_redis":
        from snackshop.db import get_redis
        return get_redis
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
