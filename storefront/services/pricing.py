# storefront/services/pricing.py
# Чистые функции расчёта сумм корзины и заказа. Не ходят в БД.
from dataclasses import dataclass
from typing import Iterable, Optional

from storefront.core.config import settings
from storefront.core.errors import InvalidInput
from storefront.models.coupon import DiscountType
from storefront.models.order import ShippingMethod


@dataclass(frozen=True)
class CartTotals:
    subtotal: float
    discount: float
    total: float


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    shipping_cost: float
    tax: float
    discount: float
    total: float


def subtotal_of(lines: Iterable) -> float:
    """Σ(price × quantity) по строкам со снимком цены."""
    return sum(line.price * line.quantity for line in lines)


def coupon_discount(subtotal: float, discount: Optional[float], discount_type: Optional[str]) -> float:
    """
    Скидка по купону: процент от подытога либо фиксированная сумма.
    Фиксированная сумма не обрезается: ограничен снизу только итог корзины.
    """
    if not discount:
        return 0.0
    if DiscountType(discount_type) == DiscountType.percentage:
        return subtotal * (discount / 100)
    return float(discount)


def cart_totals(cart) -> CartTotals:
    subtotal = subtotal_of(cart.items)
    discount = coupon_discount(subtotal, cart.coupon_discount, cart.coupon_discount_type)
    return CartTotals(subtotal=subtotal, discount=discount, total=max(subtotal - discount, 0.0))


def shipping_cost_for(method) -> float:
    fees = {
        ShippingMethod.standard: settings.SHIPPING_STANDARD_FEE,
        ShippingMethod.express: settings.SHIPPING_EXPRESS_FEE,
        ShippingMethod.pickup: settings.SHIPPING_PICKUP_FEE,
    }
    try:
        return fees[ShippingMethod(method)]
    except ValueError:
        raise InvalidInput(f"Unsupported shipping method: {method}")


def order_totals(cart, shipping_method) -> OrderTotals:
    """Итоги заказа: subtotal + shipping + tax − discount (без нижней границы)."""
    subtotal = subtotal_of(cart.items)
    shipping_cost = shipping_cost_for(shipping_method)
    tax = subtotal * settings.TAX_RATE
    discount = coupon_discount(subtotal, cart.coupon_discount, cart.coupon_discount_type)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        discount=discount,
        total=subtotal + shipping_cost + tax - discount,
    )
