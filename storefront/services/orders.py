# storefront/services/orders.py
# Оформление заказа из корзины и жизненный цикл статусов заказа.
import logging
import math
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import (
    EmptyCart,
    Forbidden,
    InternalError,
    InvalidInput,
    InvalidStatusTransition,
    NotFound,
    StoreError,
)
from storefront.models.order import (
    Order,
    OrderItem,
    OrderSequence,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingMethod,
)
from storefront.services import coupons, inventory, notifications, pricing
from storefront.services.cart import find_cart

logger = logging.getLogger(__name__)

# Допустимые переходы статусов: всё, чего нет в таблице, запрещено
ALLOWED_TRANSITIONS = {
    OrderStatus.pending: {OrderStatus.confirmed, OrderStatus.processing, OrderStatus.cancelled},
    OrderStatus.confirmed: {OrderStatus.processing, OrderStatus.shipped, OrderStatus.cancelled, OrderStatus.refunded},
    OrderStatus.processing: {OrderStatus.shipped, OrderStatus.cancelled, OrderStatus.refunded},
    OrderStatus.shipped: {OrderStatus.delivered, OrderStatus.refunded},
    OrderStatus.delivered: {OrderStatus.refunded},
    OrderStatus.cancelled: set(),
    OrderStatus.refunded: set(),
}


def can_transition(current, target) -> bool:
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def ensure_transition(order: Order, target) -> OrderStatus:
    target = OrderStatus(target)
    if not can_transition(order.status, target):
        raise InvalidStatusTransition(OrderStatus(order.status).value, target.value)
    return target


def next_order_number(db: Session, now: datetime | None = None) -> str:
    """
    KF + ГГММДД + 4-значный номер за день.
    Номер берётся атомарным инкрементом счётчика дня в текущей транзакции.
    """
    now = now or datetime.utcnow()
    day = now.strftime("%y%m%d")
    bump = (
        update(OrderSequence)
        .where(OrderSequence.day == day)
        .values(last_value=OrderSequence.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    if db.execute(bump).rowcount == 0:
        db.add(OrderSequence(day=day, last_value=1))
        db.flush()
    sequence = db.execute(
        select(OrderSequence.last_value).where(OrderSequence.day == day)
    ).scalar_one()
    return f"{settings.ORDER_NUMBER_PREFIX}{day}{sequence:04d}"


def _coerce(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInput(f"Unsupported {label}: {value}")


def place_order(db: Session, user, shipping_address: dict, payment_method, shipping_method="standard",
                notes: str | None = None) -> Order:
    """
    Превращает непустую корзину пользователя в заказ.

    Проверка остатков, создание заказа, списание остатков, учёт купона и
    очистка корзины идут одной транзакцией: при любой ошибке ничего не меняется.
    Письмо-подтверждение отправляется после коммита и не влияет на результат.
    """
    payment_method = _coerce(PaymentMethod, payment_method, "payment method")
    shipping_method = _coerce(ShippingMethod, shipping_method or ShippingMethod.standard, "shipping method")

    cart = find_cart(db, user.id)
    if cart is None or cart.is_empty():
        raise EmptyCart()

    for item in cart.items:
        inventory.check_available(db, item.product_id, item.sku, item.quantity)

    totals = pricing.order_totals(cart, shipping_method)

    try:
        order = Order(
            order_number=next_order_number(db),
            user_id=user.id,
            shipping_name=shipping_address["name"],
            shipping_phone=shipping_address["phone"],
            shipping_street=shipping_address["street"],
            shipping_city=shipping_address["city"],
            shipping_postal_code=shipping_address.get("postal_code"),
            shipping_country=shipping_address.get("country"),
            shipping_notes=shipping_address.get("notes"),
            payment_method=payment_method,
            payment_status=PaymentStatus.pending,
            shipping_method=shipping_method,
            shipping_cost=totals.shipping_cost,
            subtotal=totals.subtotal,
            tax=totals.tax,
            discount=totals.discount,
            coupon_code=cart.coupon_code,
            total=totals.total,
            currency=settings.CURRENCY,
            status=OrderStatus.pending,
            notes=notes,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    product_name=item.product.name,
                    sku=item.sku,
                    size=item.size,
                    color_name=item.color_name,
                    color_hex=item.color_hex,
                    quantity=item.quantity,
                    price=item.price,
                    total=item.price * item.quantity,
                )
                for item in cart.items
            ],
        )
        db.add(order)
        db.flush()

        for item in cart.items:
            inventory.decrement(db, item.product_id, item.sku, item.quantity, item.product.name)
        if cart.coupon_code:
            coupons.redeem(db, cart.coupon_code)
        cart.clear()
        db.commit()
    except StoreError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Create order error for user {user.id}: {e}", exc_info=True)
        raise InternalError("Could not place order")

    db.refresh(order)
    logger.info(f"🧾 Order {order.order_number} placed by user {user.id}, total {order.total:.2f}")
    notifications.notify_order_placed(user, order)
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def get_order_for(db: Session, order_id: int, user) -> Order:
    """Заказ доступен владельцу и администратору."""
    order = get_order(db, order_id)
    if order.user_id != user.id and not user.is_admin:
        raise Forbidden()
    return order


def get_owned_order(db: Session, order_id: int, user) -> Order:
    order = get_order(db, order_id)
    if order.user_id != user.id:
        raise NotFound("Order not found")
    return order


def track_order(db: Session, order_number: str) -> Order:
    order = db.query(Order).filter(Order.order_number == order_number).first()
    if order is None:
        raise NotFound("Order not found")
    return order


def list_orders(db: Session, user_id: int | None = None, status=None, page: int = 1, limit: int = 10) -> dict:
    """Постраничный список заказов, новые первыми. user_id=None: все заказы."""
    query = db.query(Order)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if status:
        query = query.filter(Order.status == _coerce(OrderStatus, status, "status"))
    total = query.count()
    orders = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "count": len(orders),
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "currentPage": page,
        "orders": orders,
    }


def _restore_stock(db: Session, order: Order) -> None:
    for item in order.items:
        inventory.restore(db, item.product_id, item.sku, item.quantity)


def commit_or_fail(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{action} failed: {e}", exc_info=True)
        raise InternalError()


def cancel_order(db: Session, order_id: int, user, reason: str | None = None) -> Order:
    """Отмена покупателем: возвращает остатки по всем строкам заказа."""
    order = get_order(db, order_id)
    if order.user_id != user.id:
        raise Forbidden()
    ensure_transition(order, OrderStatus.cancelled)

    _restore_stock(db, order)
    order.status = OrderStatus.cancelled
    order.cancelled_at = datetime.utcnow()
    order.cancellation_reason = reason
    commit_or_fail(db, f"Cancel order {order.order_number}")
    db.refresh(order)
    logger.info(f"Order {order.order_number} cancelled by user {user.id}")
    return order


def update_status(db: Session, order_id: int, status, tracking_number: str | None = None,
                  tracking_url: str | None = None, reason: str | None = None) -> Order:
    """Смена статуса администратором по таблице ALLOWED_TRANSITIONS."""
    order = get_order(db, order_id)
    target = ensure_transition(order, _coerce(OrderStatus, status, "status"))
    previous = OrderStatus(order.status)

    if target == OrderStatus.shipped:
        order.tracking_number = tracking_number
        order.tracking_url = tracking_url
    elif target == OrderStatus.delivered:
        order.delivered_at = datetime.utcnow()
    elif target == OrderStatus.cancelled:
        _restore_stock(db, order)
        order.cancelled_at = datetime.utcnow()
        order.cancellation_reason = reason
    order.status = target
    commit_or_fail(db, f"Update status of order {order.order_number}")
    db.refresh(order)
    logger.info(f"Order {order.order_number}: {previous.value} -> {target.value}")
    notifications.notify_status_changed(order.user, order)
    return order


def update_payment_status(db: Session, order_id: int, payment_status) -> Order:
    """Отдельное действие администратора; доставка его не подразумевает."""
    order = get_order(db, order_id)
    order.payment_status = _coerce(PaymentStatus, payment_status, "payment status")
    commit_or_fail(db, f"Update payment status of order {order.order_number}")
    db.refresh(order)
    logger.info(f"Order {order.order_number}: payment status -> {order.payment_status.value}")
    return order


def confirm_if_pending(order: Order) -> None:
    """Подтверждает заказ после оплаты, если это допустимый переход."""
    if can_transition(order.status, OrderStatus.confirmed):
        order.status = OrderStatus.confirmed
