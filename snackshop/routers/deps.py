"""
Shared Dependencies for Routers

Every request gets its own CartEngine hydrated from storage, so the
process holds no per-cart state and concurrent requests never share a
session. Storage is the single source of truth (last write wins).
"""

from typing import AsyncIterator, Optional

from fastapi import Header

from snackshop import config
from snackshop.auth.session import WebSessionProvider
from snackshop.cart import CartEngine, CartStorage, CartViewRenderer, RedisCartStorage
from snackshop.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


class CartEngineFactory:
    """Builds request-scoped engines over one shared storage backend."""

    def __init__(self, storage: Optional[CartStorage] = None):
        self._storage = storage

    @property
    def storage(self) -> CartStorage:
        if self._storage is None:
            self._storage = RedisCartStorage()
        return self._storage

    def storage_key(self, cart_id: str) -> str:
        return f"{config.CART_STORAGE_KEY}:{cart_id}"

    async def open(self, cart_id: str, session_token: Optional[str] = None) -> CartEngine:
        """Engine for ``cart_id`` holding the latest stored cart and the caller's session."""
        engine = await CartEngine.create(
            self.storage,
            storage_key=self.storage_key(cart_id),
            renderer=CartViewRenderer(),
            session=WebSessionProvider(session_token),
        )
        logger.debug(f"Cart engine opened for {sanitize_id_for_logging(cart_id)}")
        return engine


_factory: Optional[CartEngineFactory] = None


def get_engine_factory() -> CartEngineFactory:
    """Get or create the process-wide factory (lazy loaded)."""
    global _factory
    if _factory is None:
        _factory = CartEngineFactory()
    return _factory


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def get_cart_engine(
    x_cart_id: str = Header(..., min_length=1, max_length=128),
    authorization: Optional[str] = Header(None),
) -> AsyncIterator[CartEngine]:
    """FastAPI dependency: a cart engine for the calling browser, closed after the request."""
    engine = await get_engine_factory().open(x_cart_id, _bearer_token(authorization))
    try:
        yield engine
    finally:
        engine.close()
