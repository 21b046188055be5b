"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import Mock

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("SNACKSHOP_API_BASE", "http://orders.test/api")

from snackshop.cart import CartEngine, CartViewRenderer, MemoryCartStorage  # noqa: E402
from snackshop.notifications import Notifier  # noqa: E402

STORAGE_KEY = "test_cart"


@pytest.fixture
def storage():
    """Storage shared by every engine of one test (one browser)"""
    return MemoryCartStorage()


@pytest.fixture
def notifier():
    """Notifier that records calls"""
    return Mock(spec=Notifier)


@pytest.fixture
def renderer():
    """Renderer keeping the last view-model"""
    return CartViewRenderer()


@pytest.fixture
def make_engine(storage, notifier, renderer):
    """Factory for hydrated engines; keyword arguments override the defaults"""
    async def _make(**kwargs) -> CartEngine:
        options = {
            "storage_key": STORAGE_KEY,
            "notifier": notifier,
            "renderer": renderer,
            "debounce_seconds": 0.01,
        }
        options.update(kwargs)
        target_storage = options.pop("storage", storage)
        return await CartEngine.create(target_storage, **options)

    return _make


@pytest.fixture
def sample_product():
    """Sample catalog product"""
    return {
        "id": "chips-01",
        "name": "Sea Salt Chips",
        "price": 10.0,
        "imageUrl": "/img/chips.png",
        "category": "Chips",
        "discount": 10,
    }


@pytest.fixture
def plain_product():
    """Product without a per-item discount"""
    return {
        "id": "soda-02",
        "name": "Cherry Soda",
        "price": 2.5,
        "category": "Drinks",
    }
