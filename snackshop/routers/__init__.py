"""FastAPI routers: the HTTP presentation adapter for the cart."""
from .cart import router as cart_router

__all__ = ["cart_router"]
