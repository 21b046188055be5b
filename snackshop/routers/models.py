"""
Cart API Pydantic Models
"""
from typing import Literal, Optional
from pydantic import BaseModel, Field


class ProductPayload(BaseModel):
    id: str
    name: str
    price: float = Field(ge=0)
    image_url: Optional[str] = None
    category: Optional[str] = None
    discount: float = Field(default=0, ge=0, le=100)


class AddToCartRequest(BaseModel):
    product: ProductPayload
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    product_id: str
    quantity: int  # 0 or below removes the item


class ApplyDiscountRequest(BaseModel):
    code: str


class ClearCartRequest(BaseModel):
    confirm: bool = False


class CheckoutRequest(BaseModel):
    payment_method: Literal["card", "cod", "cash"] = "card"
