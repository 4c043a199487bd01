# storefront/models/cart.py
# Модели Cart и CartItem: корзина пользователя (одна на пользователя).
# Суммы не хранятся, а пересчитываются из строк при каждом чтении.
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from storefront.db.base import Base
from storefront.models.coupon import DiscountType


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    coupon_code = Column(String, nullable=True)
    coupon_discount = Column(Float, nullable=True)
    coupon_discount_type = Column(Enum(DiscountType), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")
    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def find_item(self, product_id: int, sku: str):
        for item in self.items:
            if item.product_id == product_id and item.sku == sku:
                return item
        return None

    def clear(self) -> None:
        self.items = []
        self.drop_coupon()

    def drop_coupon(self) -> None:
        self.coupon_code = None
        self.coupon_discount = None
        self.coupon_discount_type = None

    def is_empty(self) -> bool:
        return len(self.items) == 0

    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    # описание варианта фиксируется в момент добавления
    sku = Column(String, nullable=False)
    size = Column(String, nullable=True)
    color_name = Column(String, nullable=True)
    color_hex = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")
