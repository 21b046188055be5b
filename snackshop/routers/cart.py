"""
Cart Router

Forwards storefront intents (add, edit quantity, remove, discount code,
clear, checkout) to the caller's CartEngine and answers with the cart
as a view-model plus raw totals.
"""
from fastapi import APIRouter, Depends, HTTPException

from snackshop.cart import CartEngine
from snackshop.cart.presentation import build_cart_view
from snackshop.cart.service import totals_to_dict
from snackshop.errors import (
    OrderSubmissionError,
    MSG_CART_EMPTY,
    MSG_DISCOUNT_CODE_INVALID,
    MSG_INVALID_PRODUCT,
    MSG_INVALID_QUANTITY,
    MSG_LOGIN_REQUIRED,
)
from snackshop.logging import get_logger
from snackshop.services.money import to_float
from .deps import get_cart_engine
from .models import (
    AddToCartRequest,
    ApplyDiscountRequest,
    CheckoutRequest,
    ClearCartRequest,
    UpdateCartItemRequest,
)

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


def _cart_response(engine: CartEngine) -> dict:
    totals = engine.get_totals()
    return {
        "items": [item.to_dict() for item in engine.items],
        "totals": totals_to_dict(totals),
        "discountRate": to_float(engine.global_discount_rate),
        "discountCode": engine.discount_code,
        "view": build_cart_view(engine.items, totals),
    }


@router.get("/cart")
async def get_cart(engine: CartEngine = Depends(get_cart_engine)):
    """Current cart with totals."""
    return _cart_response(engine)


@router.post("/cart/add")
async def add_to_cart(request: AddToCartRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Add a product; repeated adds of one product merge into one line."""
    if request.quantity < 1:
        raise HTTPException(status_code=400, detail=MSG_INVALID_QUANTITY)
    product = request.product.model_dump()
    if not await engine.add_item(product, request.quantity):
        raise HTTPException(status_code=400, detail=MSG_INVALID_PRODUCT)
    return _cart_response(engine)


@router.patch("/cart/item")
async def update_cart_item(request: UpdateCartItemRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Set an item's quantity (0 or below removes it)."""
    await engine.update_quantity(request.product_id, request.quantity)
    return _cart_response(engine)


@router.delete("/cart/item")
async def remove_cart_item(product_id: str, engine: CartEngine = Depends(get_cart_engine)):
    """Remove an item; unknown ids are ignored."""
    await engine.remove_item(product_id)
    return _cart_response(engine)


@router.post("/cart/discount")
async def apply_discount(request: ApplyDiscountRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Apply a discount code, replacing any code applied before."""
    if not await engine.apply_discount_code(request.code):
        raise HTTPException(status_code=400, detail=MSG_DISCOUNT_CODE_INVALID)
    return _cart_response(engine)


@router.post("/cart/clear")
async def clear_cart(request: ClearCartRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Empty the cart. The client must send confirm=true after asking the user."""
    cleared = await engine.clear(confirm=request.confirm)
    response = _cart_response(engine)
    response["cleared"] = cleared
    return response


@router.get("/cart/checkout")
async def get_checkout_data(engine: CartEngine = Depends(get_cart_engine)):
    """Payload that would be submitted as an order."""
    return engine.get_checkout_data()


@router.post("/cart/checkout")
async def checkout(request: CheckoutRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Submit the cart as an order for the logged-in user."""
    if not engine.items:
        raise HTTPException(status_code=400, detail=MSG_CART_EMPTY)
    if engine.session is None or engine.session.current_user() is None:
        raise HTTPException(status_code=401, detail=MSG_LOGIN_REQUIRED)

    try:
        order = await engine.submit_order(request.payment_method)
    except OrderSubmissionError as e:
        logger.error(f"Checkout failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to place order")
    return {"order": order, "checkout": engine.get_checkout_data()}
