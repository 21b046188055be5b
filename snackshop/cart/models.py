"""Cart models with Decimal-based pricing and the persisted envelope format."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional, List

from snackshop.logging import get_logger, sanitize_id_for_logging
from snackshop.services.money import to_decimal, to_float

logger = get_logger(__name__)


@dataclass
class Product:
    """Catalog record handed to the cart by presentation code."""
    id: str
    name: str
    price: Decimal
    image_url: str = ""
    category: str = ""
    discount: Decimal = Decimal("0")

    def __post_init__(self):
        self.price = to_decimal(self.price)
        self.discount = to_decimal(self.discount)

    @property
    def is_valid(self) -> bool:
        """Has an id and name, a finite non-negative price and a 0-100 discount."""
        if not (self.id and self.name):
            return False
        if not (self.price.is_finite() and self.discount.is_finite()):
            return False
        return self.price >= 0 and Decimal("0") <= self.discount <= Decimal("100")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Product":
        """Build from a catalog row; accepts the storefront's camelCase keys too."""
        raw_id = data.get("id")
        return cls(
            id=str(raw_id) if raw_id not in (None, "") else "",
            name=data.get("name") or "",
            price=data.get("price"),
            image_url=data.get("image_url") or data.get("imageUrl") or "",
            category=data.get("category") or "",
            discount=data.get("discount") or 0,
        )


@dataclass
class LineItem:
    """Single product entry in the cart."""
    id: str
    name: str
    unit_price: Decimal
    quantity: int
    image_url: str = ""
    category: str = ""
    discount_percent: Decimal = Decimal("0")

    def __post_init__(self):
        self.unit_price = to_decimal(self.unit_price)
        self.discount_percent = to_decimal(self.discount_percent)

    @property
    def line_total(self) -> Decimal:
        """Undiscounted price for all units."""
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        """Serialize with the storefront's storage keys."""
        return {
            "id": self.id,
            "name": self.name,
            "price": to_float(self.unit_price),
            "quantity": self.quantity,
            "imageUrl": self.image_url,
            "category": self.category,
            "discount": to_float(self.discount_percent),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """
        Create from a stored dict.

        Raises:
            KeyError, TypeError, ValueError: If the entry is malformed
            OverflowError: If the quantity is infinite
        """
        quantity = data["quantity"]
        if isinstance(quantity, bool) or int(quantity) != quantity:
            raise ValueError(f"quantity must be an integer, got {quantity!r}")
        item = cls(
            id=str(data["id"]),
            name=str(data["name"]),
            unit_price=to_decimal(data["price"]),
            quantity=int(quantity),
            image_url=data.get("imageUrl") or "",
            category=data.get("category") or "",
            discount_percent=to_decimal(data.get("discount") or 0),
        )
        if not (item.unit_price.is_finite() and item.discount_percent.is_finite()):
            raise ValueError(f"non-finite price or discount for {sanitize_id_for_logging(item.id)}")
        return item


@dataclass
class CartState:
    """Line items in insertion order plus the single applied global discount."""
    items: List[LineItem] = field(default_factory=list)
    global_discount_rate: Decimal = Decimal("0")
    discount_code: Optional[str] = None

    def __post_init__(self):
        self.global_discount_rate = to_decimal(self.global_discount_rate)

    def find(self, product_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.id == product_id), None)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_envelope(self) -> dict:
        """Current persisted shape. Writers always use this form."""
        return {
            "items": [item.to_dict() for item in self.items],
            "discountRate": to_float(self.global_discount_rate),
            "discountCode": self.discount_code,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "CartState":
        """
        Build state from a parsed storage value.

        Accepts the envelope ``{"items": [...], "discountRate": n}`` and the
        legacy bare list of items (discount rate defaults to 0). Anything
        else yields an empty cart. Malformed entries are skipped, and
        duplicate ids are folded into the first occurrence so the
        one-line-per-product invariant holds after hydration.
        """
        if isinstance(payload, list):
            raw_items, rate, code = payload, 0, None
        elif isinstance(payload, dict) and isinstance(payload.get("items"), list):
            raw_items = payload["items"]
            rate = payload.get("discountRate") or 0
            code = payload.get("discountCode")
        else:
            return cls()

        state = cls(global_discount_rate=rate, discount_code=code if isinstance(code, str) else None)
        rate = state.global_discount_rate
        if not rate.is_finite() or not Decimal("0") <= rate <= Decimal("1"):
            logger.warning(f"Ignoring out-of-range stored discount rate {state.global_discount_rate}")
            state.global_discount_rate = Decimal("0")
            state.discount_code = None

        for raw in raw_items:
            try:
                item = LineItem.from_dict(raw)
            except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as e:
                logger.warning(f"Skipping malformed stored cart item: {e}")
                continue
            if item.quantity < 1:
                logger.warning(
                    f"Skipping stored cart item {sanitize_id_for_logging(item.id)} "
                    f"with quantity {item.quantity}"
                )
                continue
            existing = state.find(item.id)
            if existing:
                existing.quantity += item.quantity
            else:
                state.items.append(item)
        return state


@dataclass(frozen=True)
class Totals:
    """Derived pricing summary. Never persisted."""
    subtotal: Decimal
    per_item_discount: Decimal
    global_discount: Decimal
    discount_amount: Decimal
    discounted_subtotal: Decimal
    tax: Decimal
    total: Decimal
    item_count: int
