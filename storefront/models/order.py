# storefront/models/order.py
# Модели Order и OrderItem для фиксации сумм и статусов заказа,
# плюс OrderSequence: атомарный счётчик номеров заказов по дням.
from sqlalchemy import Column, Integer, String, ForeignKey, Float, DateTime, Enum, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from storefront.db.base import Base
import enum


class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    refunded = "refunded"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class PaymentMethod(str, enum.Enum):
    mpesa = "mpesa"
    stripe = "stripe"
    paypal = "paypal"
    cash_on_delivery = "cash_on_delivery"


class ShippingMethod(str, enum.Enum):
    standard = "standard"
    express = "express"
    pickup = "pickup"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    shipping_name = Column(String, nullable=False)
    shipping_phone = Column(String, nullable=False)
    shipping_street = Column(String, nullable=False)
    shipping_city = Column(String, nullable=False)
    shipping_postal_code = Column(String, nullable=True)
    shipping_country = Column(String, nullable=True)
    shipping_notes = Column(String, nullable=True)

    payment_method = Column(Enum(PaymentMethod), nullable=False)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.pending, nullable=False)
    transaction_id = Column(String, nullable=True)
    receipt_url = Column(String, nullable=True)
    payment_intent_id = Column(String, nullable=True, index=True)
    mpesa_request_id = Column(String, nullable=True, index=True)
    mpesa_code = Column(String, nullable=True)

    shipping_method = Column(Enum(ShippingMethod), default=ShippingMethod.standard, nullable=False)
    shipping_cost = Column(Float, default=0.0)
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, default=0.0)
    discount = Column(Float, default=0.0)
    coupon_code = Column(String, nullable=True)
    total = Column(Float, nullable=False)
    currency = Column(String, default="KES")

    status = Column(Enum(OrderStatus), default=OrderStatus.pending, nullable=False, index=True)
    tracking_number = Column(String, nullable=True)
    tracking_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def shipping_address(self) -> dict:
        return {
            "name": self.shipping_name,
            "phone": self.shipping_phone,
            "street": self.shipping_street,
            "city": self.shipping_city,
            "postal_code": self.shipping_postal_code,
            "country": self.shipping_country,
            "notes": self.shipping_notes,
        }


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_name = Column(String, nullable=False)
    sku = Column(String, nullable=False)
    size = Column(String, nullable=True)
    color_name = Column(String, nullable=True)
    color_hex = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")


class OrderSequence(Base):
    __tablename__ = "order_sequences"

    day = Column(String(6), primary_key=True)  # YYMMDD
    last_value = Column(Integer, nullable=False, default=0)
