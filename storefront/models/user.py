# storefront/models/user.py
# Модель покупателя/администратора: email, hashed_password, role, blacklisted.
# Список заказов пользователя не хранится: это всегда запрос по orders.user_id.
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from datetime import datetime
from storefront.db.base import Base
import enum


class RoleEnum(str, enum.Enum):
    customer = "customer"
    admin = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(Enum(RoleEnum), default=RoleEnum.customer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    blacklisted = Column(Boolean, default=False)

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin
