"""
Presentation adapters for the cart.

The engine never needs a UI: it talks to a CartRenderer, and NullRenderer
keeps it fully functional when nothing is attached.
"""
import html
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from snackshop.services.money import format_money
from .models import LineItem, Totals


def parse_quantity_input(raw: Any) -> int:
    """
    Interpret a typed quantity the way the storefront input does.

    Anything that is not a whole number, or is below 1, becomes 1.
    """
    if isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        value = raw
    else:
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            return 1
    return value if value >= 1 else 1


def checkout_label(item_count: int) -> str:
    return f"Checkout ({item_count} item{'' if item_count == 1 else 's'})"


def build_cart_view(items: Sequence[LineItem], totals: Totals) -> dict:
    """Plain view-model of the cart: escaped names, formatted money, badge."""
    if not items:
        return {
            "is_empty": True,
            "items": [],
            "summary": None,
            "checkout_label": checkout_label(0),
            "badge": {"count": 0, "visible": False},
        }

    return {
        "is_empty": False,
        "items": [
            {
                "id": item.id,
                "name": html.escape(item.name),
                "image_url": item.image_url,
                "unit_price": format_money(item.unit_price),
                "discount_percent": float(item.discount_percent),
                "quantity": item.quantity,
                "line_total": format_money(item.line_total),
            }
            for item in items
        ],
        "summary": {
            "subtotal": format_money(totals.subtotal),
            "discount": f"-{format_money(totals.discount_amount)}",
            "tax": format_money(totals.tax),
            "total": format_money(totals.total),
        },
        "checkout_label": checkout_label(totals.item_count),
        "badge": {"count": totals.item_count, "visible": totals.item_count > 0},
    }


class CartRenderer(ABC):
    """Observer that redraws the cart. Methods may return awaitables."""

    @abstractmethod
    def render(self, view: dict) -> Any:
        pass

    @abstractmethod
    def update_badge(self, count: int) -> Any:
        pass


class NullRenderer(CartRenderer):
    """No UI attached: rendering is a no-op."""

    def render(self, view: dict) -> dict:
        return view

    def update_badge(self, count: int) -> None:
        return None


class CartViewRenderer(CartRenderer):
    """Keeps the latest view-model and badge count for a UI (or an API) to read."""

    def __init__(self):
        self.last_view: Optional[dict] = None
        self.badge_count = 0

    def render(self, view: dict) -> dict:
        self.last_view = view
        return view

    def update_badge(self, count: int) -> None:
        self.badge_count = count
