"""Cart engine: the single owner of cart state, pricing and persistence."""
import json
import secrets
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from snackshop import config
from snackshop.auth.session import SessionProvider
from snackshop.checkout import (
    CheckoutGateway,
    LoggingCheckoutGateway,
    OrderClient,
    build_order_payload,
)
from snackshop.errors import (
    CartStorageError,
    OrderSubmissionError,
    MSG_CART_CLEARED,
    MSG_CART_EMPTY,
    MSG_CONFIRM_CLEAR,
    MSG_DISCOUNT_CODE_APPLIED,
    MSG_DISCOUNT_CODE_INVALID,
    MSG_DISCOUNT_CODE_REQUIRED,
    MSG_INVALID_PRODUCT,
    MSG_INVALID_QUANTITY,
    MSG_ITEM_ADDED,
    MSG_ITEM_REMOVED,
    MSG_LOGIN_REQUIRED,
    MSG_ORDER_FAILED,
    MSG_ORDER_PLACED,
)
from snackshop.logging import get_cart_logger, sanitize_string_for_logging
from snackshop.notifications import LoggingNotifier, Notifier, Severity
from snackshop.services.money import to_float
from snackshop.utils import maybe_await
from .debounce import Debouncer
from .models import CartState, LineItem, Product, Totals
from .presentation import CartRenderer, NullRenderer, build_cart_view, parse_quantity_input
from .pricing import compute_totals, lookup_discount_rate, normalize_code
from .storage import CartStorage

# Yes/no prompt shown before clearing; may be sync or async
Confirmer = Callable[[str], Union[bool, Awaitable[bool]]]


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def totals_to_dict(totals: Totals) -> dict:
    """Totals as JSON-ready floats with the storefront's key names."""
    return {
        "subtotal": to_float(totals.subtotal),
        "discountAmount": to_float(totals.discount_amount),
        "discountedSubtotal": to_float(totals.discounted_subtotal),
        "tax": to_float(totals.tax),
        "total": to_float(totals.total),
        "itemCount": totals.item_count,
    }


class CartEngine:
    """
    Shopping cart for one browsing session.

    Holds the line items and the applied discount code, prices them, and
    writes every change to storage under one key. Other engines on the
    same key (other tabs) pick the change up through CartSync.

    UI concerns are injected: a renderer, a notifier, a confirmation
    prompt, a session and a checkout gateway. All are optional.

    Usage:
        engine = await CartEngine.create(MemoryCartStorage())
        await engine.add_item({"id": "chips", "name": "Chips", "price": 2.5})
        totals = engine.get_totals()
    """

    def __init__(
        self,
        storage: CartStorage,
        *,
        storage_key: str = config.CART_STORAGE_KEY,
        notifier: Optional[Notifier] = None,
        renderer: Optional[CartRenderer] = None,
        session: Optional[SessionProvider] = None,
        checkout: Optional[CheckoutGateway] = None,
        order_client: Optional[OrderClient] = None,
        confirmer: Optional[Confirmer] = None,
        tax_rate: Decimal = config.TAX_RATE,
        debounce_seconds: float = config.DEBOUNCE_SECONDS,
        origin_id: Optional[str] = None,
    ):
        self.storage = storage
        self.storage_key = storage_key
        self.origin_id = origin_id or secrets.token_hex(8)
        self.tax_rate = tax_rate
        self.session = session
        self._notifier = notifier or LoggingNotifier()
        self._renderer = renderer or NullRenderer()
        self._checkout = checkout or LoggingCheckoutGateway()
        self._order_client = order_client or OrderClient()
        self._confirmer = confirmer
        self._debounce_seconds = debounce_seconds
        self._debouncers: dict[str, Debouncer] = {}
        self._state = CartState()
        self._log = get_cart_logger(__name__, storage_key, self.origin_id)

    @classmethod
    async def create(cls, storage: CartStorage, **kwargs: Any) -> "CartEngine":
        """Build an engine and hydrate it from storage."""
        engine = cls(storage, **kwargs)
        engine._state = await engine._load_state()
        engine._log.debug(f"Hydrated with {len(engine._state.items)} item(s)")
        return engine

    # ==================== State access ====================

    @property
    def items(self) -> tuple[LineItem, ...]:
        return tuple(self._state.items)

    @property
    def global_discount_rate(self) -> Decimal:
        return self._state.global_discount_rate

    @property
    def discount_code(self) -> Optional[str]:
        return self._state.discount_code

    def get_item_count(self) -> int:
        """Badge value: sum of all quantities."""
        return self._state.item_count

    def get_totals(self) -> Totals:
        return compute_totals(self._state.items, self._state.global_discount_rate, self.tax_rate)

    # ==================== Mutations ====================

    async def add_item(self, product: Union[Product, Mapping[str, Any], None], quantity: int = 1) -> bool:
        """
        Add ``quantity`` units of a product, merging into an existing line.

        Returns:
            False if the product lacks an id or name or the quantity is invalid
        """
        if isinstance(product, Mapping):
            product = Product.from_mapping(product)
        if product is None or not product.is_valid:
            await self._notify(MSG_INVALID_PRODUCT, Severity.ERROR)
            return False
        if not _is_positive_int(quantity):
            await self._notify(MSG_INVALID_QUANTITY, Severity.WARNING)
            return False

        existing = self._state.find(product.id)
        if existing:
            existing.quantity += quantity
        else:
            self._state.items.append(
                LineItem(
                    id=product.id,
                    name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                    image_url=product.image_url,
                    category=product.category,
                    discount_percent=product.discount,
                )
            )

        await self._persist()
        await self._update_badge()
        await self._notify(MSG_ITEM_ADDED.format(name=product.name), Severity.SUCCESS)
        return True

    async def remove_item(self, product_id: str) -> None:
        """Drop the line for ``product_id``. Absent ids are a no-op."""
        self._state.items = [item for item in self._state.items if item.id != product_id]
        await self._persist()
        await self.render()
        await self._update_badge()
        await self._notify(MSG_ITEM_REMOVED, Severity.INFO)

    async def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set an absolute quantity; zero or below removes the line."""
        item = self._state.find(product_id)
        if item is None:
            return
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            await self._notify(MSG_INVALID_QUANTITY, Severity.WARNING)
            return
        if quantity <= 0:
            await self.remove_item(product_id)
            return

        item.quantity = quantity
        await self._persist()
        await self.render()
        await self._update_badge()

    async def increment(self, product_id: str) -> None:
        item = self._state.find(product_id)
        await self.update_quantity(product_id, (item.quantity if item else 0) + 1)

    async def decrement(self, product_id: str) -> None:
        item = self._state.find(product_id)
        await self.update_quantity(product_id, (item.quantity if item else 1) - 1)

    def set_quantity_debounced(self, product_id: str, raw_value: Any) -> None:
        """
        Typed-quantity intent: commit the parsed value after a quiet period.

        Must be called from a running event loop.
        """
        debouncer = self._debouncers.get(product_id)
        if debouncer is None:
            debouncer = Debouncer(self._debounce_seconds, self.update_quantity)
            self._debouncers[product_id] = debouncer
        debouncer.trigger(product_id, parse_quantity_input(raw_value))

    async def flush_pending(self) -> None:
        """Commit every pending debounced quantity now."""
        for debouncer in list(self._debouncers.values()):
            await debouncer.flush()

    def close(self) -> None:
        """Drop pending debounced commits."""
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        self._debouncers.clear()

    async def clear(self, confirm: Optional[bool] = None) -> bool:
        """
        Empty the cart after a yes/no confirmation.

        The applied discount code is reset together with the items.

        Args:
            confirm: Answer given up front; when None the injected confirmer is asked

        Returns:
            True if the cart was cleared
        """
        if confirm is None:
            confirm = bool(await maybe_await(self._confirmer(MSG_CONFIRM_CLEAR))) if self._confirmer else False
        if not confirm:
            self._log.debug("Cart clear not confirmed")
            return False

        self._state = CartState()
        await self._persist()
        await self.render()
        await self._update_badge()
        await self._notify(MSG_CART_CLEARED, Severity.INFO)
        return True

    async def apply_discount_code(self, code: Any) -> bool:
        """Apply SAVE10/SAVE15-style codes. A new code replaces the previous one."""
        normalized = normalize_code(code)
        if normalized is None:
            await self._notify(MSG_DISCOUNT_CODE_REQUIRED, Severity.WARNING)
            return False

        rate = lookup_discount_rate(normalized)
        if rate is None:
            self._log.info(f"Rejected discount code {sanitize_string_for_logging(normalized, 20)}")
            await self._notify(MSG_DISCOUNT_CODE_INVALID, Severity.ERROR)
            return False

        self._state.global_discount_rate = rate
        self._state.discount_code = normalized
        await self._persist()
        await self.render()
        await self._notify(MSG_DISCOUNT_CODE_APPLIED.format(code=normalized), Severity.SUCCESS)
        return True

    # ==================== Checkout ====================

    def get_checkout_data(self) -> dict:
        """Payload handed to order submission."""
        totals = self.get_totals()
        return {
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "price": to_float(item.unit_price),
                    "quantity": item.quantity,
                    "discount": to_float(item.discount_percent),
                }
                for item in self._state.items
            ],
            "subtotal": to_float(totals.subtotal),
            "discount": to_float(totals.discount_amount),
            "tax": to_float(totals.tax),
            "total": to_float(totals.total),
            "itemCount": totals.item_count,
        }

    def to_json(self) -> dict:
        """Export of items, totals and a UTC timestamp."""
        return {
            "items": [item.to_dict() for item in self._state.items],
            "totals": totals_to_dict(self.get_totals()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def proceed_to_checkout(self) -> bool:
        """Hand over to the checkout UI once the cart is non-empty and a user is logged in."""
        if not self._state.items:
            await self._notify(MSG_CART_EMPTY, Severity.WARNING)
            return False

        if self._current_user() is None:
            await self._notify(MSG_LOGIN_REQUIRED, Severity.INFO)
            await self._call_gateway(self._checkout.prompt_login)
            return False

        await self._call_gateway(self._checkout.open_checkout, self)
        return True

    async def submit_order(self, payment_method: str = "card") -> Optional[dict]:
        """
        Post the checkout payload to the order API.

        Returns:
            The created order, or None when the cart is empty or nobody is logged in

        Raises:
            OrderSubmissionError: If the payment method is unsupported, or the order
                API is unreachable, rejects the order or answers unreadably
        """
        if not self._state.items:
            await self._notify(MSG_CART_EMPTY, Severity.WARNING)
            return None
        user = self._current_user()
        if user is None:
            await self._notify(MSG_LOGIN_REQUIRED, Severity.INFO)
            return None

        try:
            payload = build_order_payload(self.get_checkout_data(), user.id, payment_method)
        except ValueError as e:
            await self._notify(MSG_ORDER_FAILED, Severity.ERROR)
            raise OrderSubmissionError(str(e)) from e
        try:
            order = await self._order_client.submit(payload)
        except OrderSubmissionError:
            await self._notify(MSG_ORDER_FAILED, Severity.ERROR)
            raise
        await self._notify(MSG_ORDER_PLACED, Severity.SUCCESS)
        return order

    # ==================== Presentation ====================

    async def render(self) -> Any:
        """Rebuild the view-model and hand it to the renderer. Never raises."""
        try:
            view = build_cart_view(self._state.items, self.get_totals())
            return await maybe_await(self._renderer.render(view))
        except Exception as e:
            self._log.error(f"Cart render failed: {e}", exc_info=True)
            return None

    async def _update_badge(self) -> None:
        try:
            await maybe_await(self._renderer.update_badge(self.get_item_count()))
        except Exception as e:
            self._log.error(f"Cart badge update failed: {e}", exc_info=True)

    async def _notify(self, message: str, severity: Severity) -> None:
        try:
            await maybe_await(self._notifier.notify(message, severity))
        except Exception as e:
            self._log.error(f"Notifier failed, message was [{severity.value}] {message}: {e}")

    async def _call_gateway(self, method: Callable[..., Any], *args: Any) -> None:
        try:
            await maybe_await(method(*args))
        except Exception as e:
            self._log.error(f"Checkout gateway failed: {e}", exc_info=True)

    def _current_user(self):
        if self.session is None:
            return None
        try:
            user = self.session.current_user()
        except Exception as e:
            self._log.warning(f"Session lookup failed: {e}")
            return None
        if user is None or not user.id:
            return None
        return user

    # ==================== Persistence & sync ====================

    async def reload(self) -> None:
        """Discard in-memory state and adopt whatever storage holds now."""
        self._state = await self._load_state()
        self._log.debug("Reloaded from storage")
        await self.render()
        await self._update_badge()

    async def _load_state(self) -> CartState:
        try:
            raw = await self.storage.get(self.storage_key)
        except CartStorageError as e:
            self._log.warning(f"Failed to load cart from storage: {e}")
            return CartState()
        if not raw:
            return CartState()
        try:
            return CartState.from_payload(json.loads(raw))
        except (TypeError, ValueError, ArithmeticError) as e:
            self._log.warning(f"Corrupted cart data in storage: {e}")
            return CartState()

    async def _persist(self) -> None:
        """Write the envelope and announce it. Failures keep the in-memory state."""
        try:
            await self.storage.set(self.storage_key, json.dumps(self._state.to_envelope()))
        except (CartStorageError, TypeError, ValueError) as e:
            self._log.warning(f"Failed to save cart to storage: {e}")
            return
        try:
            await self.storage.publish_change(self.storage_key, self.origin_id)
        except CartStorageError as e:
            self._log.warning(f"Cart saved but change notification failed: {e}")
