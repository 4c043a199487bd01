# storefront/models/product.py
# Модели товара (Product) и его вариантов (ProductVariant: размер/цвет/SKU со своим остатком).
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Text, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import re
from storefront.db.base import Base


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "-", name.lower())
    return re.sub(r"-+", "-", slug).strip("-")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    brand = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    images = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    category = relationship("Category", back_populates="products")
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )

    def find_variant(self, sku: str):
        """Вариант по SKU или None."""
        for variant in self.variants:
            if variant.sku == sku:
                return variant
        return None


class ProductVariant(Base):
    __tablename__ = "product_variants"
    # остаток по SKU никогда не уходит в минус
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_variant_stock_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String, unique=True, index=True, nullable=False)
    size = Column(String, nullable=True)
    color_name = Column(String, nullable=True)
    color_hex = Column(String, nullable=True)
    stock = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")
