"""
Cart settings read from the environment.

Values are resolved once at import; tests override them by passing
explicit arguments to the engine rather than patching the environment.
"""

import os
from decimal import Decimal


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name, "").strip()
    return Decimal(raw or default)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else default


# Storage identity shared by every tab of one browser
CART_STORAGE_KEY = os.environ.get("CART_STORAGE_KEY", "") or "snackshop_cart"

# Pricing
TAX_RATE = _env_decimal("CART_TAX_RATE", "0.10")

# Quiet period before a typed quantity is committed
DEBOUNCE_SECONDS = _env_float("CART_DEBOUNCE_SECONDS", 0.3)

# How often CartSync polls the change feed (Upstash REST has no blocking XREAD)
SYNC_POLL_SECONDS = _env_float("CART_SYNC_POLL_SECONDS", 1.0)

# Order API the checkout boundary posts to
API_BASE = os.environ.get("SNACKSHOP_API_BASE", "") or "http://localhost:3000/api"

# Upstash Redis (REST)
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Logging: level name, and "1" for compact lines when the host timestamps output
LOG_LEVEL = os.environ.get("LOG_LEVEL", "") or "INFO"
LOG_COMPACT = os.environ.get("LOG_COMPACT", "") == "1"
