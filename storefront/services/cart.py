# storefront/services/cart.py
# Операции над корзиной пользователя. Каждая мутация сразу коммитится.
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import InsufficientStock, InvalidQuantity, NotFound
from storefront.models.cart import Cart, CartItem
from storefront.services import coupons, inventory

logger = logging.getLogger(__name__)


def _validate_quantity(quantity: int) -> None:
    if quantity < 1:
        raise InvalidQuantity("Quantity must be at least 1")
    if quantity > settings.CART_MAX_ITEM_QUANTITY:
        raise InvalidQuantity(f"Quantity cannot exceed {settings.CART_MAX_ITEM_QUANTITY}")


def _touch(cart: Cart) -> None:
    cart.expires_at = datetime.utcnow() + timedelta(days=settings.CART_TTL_DAYS)


def find_cart(db: Session, user_id: int) -> Cart | None:
    return db.query(Cart).filter(Cart.user_id == user_id).first()


def get_or_create_cart(db: Session, user_id: int) -> Cart:
    """Корзина создаётся лениво при первом обращении."""
    cart = find_cart(db, user_id)
    if cart is None:
        cart = Cart(user_id=user_id)
        _touch(cart)
        db.add(cart)
        db.commit()
        db.refresh(cart)
        logger.info(f"Created cart for user {user_id}")
    return cart


def add_item(db: Session, user_id: int, product_id: int, sku: str, quantity: int = 1) -> Cart:
    """
    Добавляет вариант товара в корзину.

    Если строка с тем же товаром и SKU уже есть, увеличивает количество;
    остаток проверяется для итогового количества, а не только для добавки.
    Цена строки: снимок цены товара в момент добавления.
    """
    _validate_quantity(quantity)
    product = inventory.get_active_product(db, product_id)
    variant = product.find_variant(sku)
    if variant is None or variant.stock < quantity:
        raise InsufficientStock(product.name, sku)

    cart = get_or_create_cart(db, user_id)
    item = cart.find_item(product_id, sku)
    if item is not None:
        combined = item.quantity + quantity
        _validate_quantity(combined)
        if variant.stock < combined:
            raise InsufficientStock(product.name, sku)
        item.quantity = combined
    else:
        cart.items.append(CartItem(
            product_id=product.id,
            sku=variant.sku,
            size=variant.size,
            color_name=variant.color_name,
            color_hex=variant.color_hex,
            quantity=quantity,
            price=product.price,
        ))
    _touch(cart)
    db.commit()
    db.refresh(cart)
    return cart


def update_item(db: Session, user_id: int, item_id: int, quantity: int) -> Cart:
    _validate_quantity(quantity)
    cart = find_cart(db, user_id)
    if cart is None:
        raise NotFound("Cart not found")
    item = next((i for i in cart.items if i.id == item_id), None)
    if item is None:
        raise NotFound("Item not found in cart")

    product = inventory.get_product(db, item.product_id)
    variant = product.find_variant(item.sku)
    if variant is None or variant.stock < quantity:
        raise InsufficientStock(product.name, item.sku)

    item.quantity = quantity
    _touch(cart)
    db.commit()
    db.refresh(cart)
    return cart


def remove_item(db: Session, user_id: int, item_id: int) -> Cart:
    """Удаление строки идемпотентно: отсутствующая строка: не ошибка."""
    cart = get_or_create_cart(db, user_id)
    cart.items = [i for i in cart.items if i.id != item_id]
    _touch(cart)
    db.commit()
    db.refresh(cart)
    return cart


def clear_cart(db: Session, user_id: int) -> Cart:
    cart = get_or_create_cart(db, user_id)
    cart.clear()
    _touch(cart)
    db.commit()
    db.refresh(cart)
    return cart


def apply_coupon(db: Session, user_id: int, code: str) -> Cart:
    coupon = coupons.get_valid_coupon(db, code)
    cart = get_or_create_cart(db, user_id)
    cart.coupon_code = coupon.code
    cart.coupon_discount = coupon.discount
    cart.coupon_discount_type = coupon.discount_type
    _touch(cart)
    db.commit()
    db.refresh(cart)
    logger.info(f"Coupon {coupon.code} applied to cart of user {user_id}")
    return cart


def remove_coupon(db: Session, user_id: int) -> Cart:
    cart = get_or_create_cart(db, user_id)
    cart.drop_coupon()
    _touch(cart)
    db.commit()
    db.refresh(cart)
    return cart
