# storefront/services/inventory.py
# Операции с остатками вариантов. Все изменения: условные UPDATE в текущей
# транзакции сессии; коммит делает вызывающий код.
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.core.errors import InsufficientStock, NotFound
from storefront.models.product import Product, ProductVariant

logger = logging.getLogger(__name__)


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def get_active_product(db: Session, product_id: int) -> Product:
    """Снятый с продажи товар для покупателя не существует."""
    product = get_product(db, product_id)
    if not product.is_active:
        raise NotFound("Product not found")
    return product


def check_available(db: Session, product_id: int, sku: str, quantity: int) -> ProductVariant:
    """Проверяет, что вариант существует и на складе хватает quantity."""
    product = db.get(Product, product_id)
    if product is None:
        raise InsufficientStock(sku=sku)
    variant = product.find_variant(sku)
    if variant is None:
        raise InsufficientStock(product.name, sku)
    # остаток мог измениться в другой транзакции
    db.refresh(variant)
    if variant.stock < quantity:
        raise InsufficientStock(product.name, sku)
    return variant


def decrement(db: Session, product_id: int, sku: str, quantity: int, product_name: str | None = None) -> None:
    """
    stock = stock - quantity WHERE stock >= quantity.
    Ноль затронутых строк значит, что остаток уже забрали, и бросается InsufficientStock.
    """
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.product_id == product_id)
        .where(ProductVariant.sku == sku)
        .where(ProductVariant.stock >= quantity)
        .values(stock=ProductVariant.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if db.execute(stmt).rowcount == 0:
        logger.warning(f"Stock decrement rejected for {sku} (qty={quantity})")
        raise InsufficientStock(product_name, sku)


def restore(db: Session, product_id: int, sku: str, quantity: int) -> bool:
    """Возвращает quantity на склад. False, если вариант уже удалён."""
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.product_id == product_id)
        .where(ProductVariant.sku == sku)
        .values(stock=ProductVariant.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    restored = db.execute(stmt).rowcount > 0
    if not restored:
        logger.warning(f"Variant {sku} no longer exists, {quantity} unit(s) not restored")
    return restored


def set_stock(db: Session, product_id: int, sku: str, stock: int) -> ProductVariant:
    product = get_product(db, product_id)
    variant = product.find_variant(sku)
    if variant is None:
        raise NotFound("Variant not found")
    variant.stock = stock
    db.commit()
    db.refresh(variant)
    return variant
