# storefront/schemas/cart.py
# Pydantic-схемы запросов и ответов корзины.
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.services.pricing import cart_totals


class VariantIn(BaseModel):
    sku: str = Field(..., min_length=1)
    size: Optional[str] = None
    color_name: Optional[str] = None


class AddToCartIn(BaseModel):
    product_id: int
    variant: VariantIn
    # границы проверяются сервисом, чтобы вернуть InvalidQuantity
    quantity: int = 1


class UpdateCartItemIn(BaseModel):
    quantity: int


class CouponIn(BaseModel):
    coupon_code: str = Field(..., min_length=1)


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    price: float
    images: List[str] = []


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product: Optional[ProductSummary] = None
    sku: str
    size: Optional[str] = None
    color_name: Optional[str] = None
    color_hex: Optional[str] = None
    quantity: int
    price: float
    added_at: Optional[datetime] = None


class CouponOut(BaseModel):
    code: str
    discount: float
    discount_type: str


class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    coupon: Optional[CouponOut] = None
    item_count: int
    subtotal: float
    discount: float
    total: float
    expires_at: Optional[datetime] = None


def cart_out(cart) -> CartOut:
    """Сериализует корзину со свежепосчитанными суммами."""
    totals = cart_totals(cart)
    coupon = None
    if cart.coupon_code:
        coupon = CouponOut(
            code=cart.coupon_code,
            discount=cart.coupon_discount,
            discount_type=getattr(cart.coupon_discount_type, "value", cart.coupon_discount_type),
        )
    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        items=[CartItemOut.model_validate(item) for item in cart.items],
        coupon=coupon,
        item_count=cart.item_count(),
        subtotal=totals.subtotal,
        discount=totals.discount,
        total=totals.total,
        expires_at=cart.expires_at,
    )
