"""
Checkout boundary.

- CheckoutGateway: hands control to the payment UI or asks for a login
- OrderClient: posts the cart's checkout payload to the order API
"""
from abc import ABC, abstractmethod
from typing import Any

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from snackshop import config
from snackshop.errors import OrderSubmissionError
from snackshop.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

NO_RESPONSE_BODY = "No response body"
PAYMENT_METHODS = ("card", "cod", "cash")


class CheckoutGateway(ABC):
    """External checkout UI. Either method may return an awaitable."""

    @abstractmethod
    def open_checkout(self, engine: Any) -> Any:
        """Close the cart view and open the payment step for ``engine``."""

    @abstractmethod
    def prompt_login(self) -> Any:
        """Ask the visitor to log in."""


class LoggingCheckoutGateway(CheckoutGateway):
    """Used when no UI is attached; records the hand-off on the log."""

    def open_checkout(self, engine: Any) -> None:
        logger.info(f"Checkout opened for {engine.get_item_count()} item(s)")

    def prompt_login(self) -> None:
        logger.info("Login required before checkout")


def build_order_payload(checkout_data: dict, user_id: str, payment_method: str = "card") -> dict:
    """Order API body: ``{userId, total, items, paymentMethod}``."""
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    return {
        "userId": user_id,
        "total": checkout_data["total"],
        "items": checkout_data["items"],
        "paymentMethod": payment_method,
    }


class OrderClient:
    """
    Thin client for ``POST {api_base}/orders``.

    Transport errors are retried with exponential backoff; HTTP error
    responses are not (the order API answered, retrying would duplicate).
    """

    def __init__(
        self,
        api_base: str = config.API_BASE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def submit(self, payload: dict) -> dict:
        """
        Submit an order.

        Returns:
            The created order as returned by the API

        Raises:
            OrderSubmissionError: If the API is unreachable, rejects the order,
                or answers with something other than a JSON object
        """
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error(f"Order API unreachable: {e}")
            raise OrderSubmissionError(f"Order API unreachable: {e}") from e

        if response.status_code >= 400:
            error_text = response.text[:200] if response.text else NO_RESPONSE_BODY
            logger.warning(f"Order API rejected order: {response.status_code} {error_text}")
            raise OrderSubmissionError(error_text, status_code=response.status_code)

        try:
            order = response.json()
        except ValueError as e:
            logger.error(f"Order API returned non-JSON body: {response.text[:200]}")
            raise OrderSubmissionError("Order API returned an unreadable response", status_code=response.status_code) from e
        if not isinstance(order, dict):
            logger.error(f"Order API returned unexpected payload type: {type(order).__name__}")
            raise OrderSubmissionError("Order API returned an unexpected response", status_code=response.status_code)

        logger.info(f"Order {sanitize_id_for_logging(order.get('id'))} created")
        return order

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, payload: dict) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(f"{self.api_base}/orders", json=payload)
