# storefront/schemas/order.py
# Pydantic-схемы заказов. OrderTrackOut без платёжных реквизитов и без адреса покупателя.
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.order import OrderStatus, PaymentMethod, PaymentStatus, ShippingMethod


class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None


class TrackingAddress(BaseModel):
    city: str
    country: Optional[str] = None


class OrderCreate(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    shipping_method: ShippingMethod = ShippingMethod.standard
    notes: Optional[str] = None


class CancelIn(BaseModel):
    reason: Optional[str] = None


class StatusUpdateIn(BaseModel):
    status: OrderStatus
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    reason: Optional[str] = None


class PaymentStatusIn(BaseModel):
    payment_status: PaymentStatus


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    sku: str
    size: Optional[str] = None
    color_name: Optional[str] = None
    color_hex: Optional[str] = None
    quantity: int
    price: float
    total: float


class OrderTrackOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    status: OrderStatus
    items: List[OrderItemOut]
    shipping_method: ShippingMethod
    shipping_address: TrackingAddress
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    subtotal: float
    shipping_cost: float
    tax: float
    discount: float
    total: float
    currency: str
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class OrderOut(OrderTrackOut):
    shipping_address: ShippingAddress
    user_id: int
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    receipt_url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    mpesa_request_id: Optional[str] = None
    mpesa_code: Optional[str] = None
    coupon_code: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    updated_at: Optional[datetime] = None


def order_out(order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


def track_out(order) -> dict:
    return OrderTrackOut.model_validate(order).model_dump(mode="json")


def page_out(page: dict) -> dict:
    return {**page, "orders": [order_out(o) for o in page["orders"]]}
