# storefront/models/coupon.py
# Купоны хранятся в БД: окно действия и лимит использований.
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum
from datetime import datetime
from storefront.db.base import Base
import enum


class DiscountType(str, enum.Enum):
    percentage = "percentage"
    fixed = "fixed"


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    discount = Column(Float, nullable=False)
    discount_type = Column(Enum(DiscountType), nullable=False)
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    max_uses = Column(Integer, nullable=True)  # None = без ограничений
    times_used = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
