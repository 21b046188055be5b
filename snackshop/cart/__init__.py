"""Cart package: models, pricing, storage, engine and cross-tab sync."""
from .models import LineItem, CartState, Totals, Product
from .pricing import DISCOUNT_CODES, compute_totals, normalize_code
from .storage import CartStorage, MemoryCartStorage, RedisCartStorage
from .service import CartEngine
from .sync import CartSync
from .debounce import Debouncer
from .presentation import CartRenderer, CartViewRenderer, NullRenderer

__all__ = [
    "LineItem",
    "CartState",
    "Totals",
    "Product",
    "DISCOUNT_CODES",
    "compute_totals",
    "normalize_code",
    "CartStorage",
    "MemoryCartStorage",
    "RedisCartStorage",
    "CartEngine",
    "CartSync",
    "Debouncer",
    "CartRenderer",
    "CartViewRenderer",
    "NullRenderer",
]
