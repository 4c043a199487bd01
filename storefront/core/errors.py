# storefront/core/errors.py
# Иерархия доменных ошибок. Сервисы бросают их, обработчик в main.py
# превращает в ответ {"success": false, "error": ...} с нужным HTTP-кодом.


class StoreError(Exception):
    """Базовая ошибка магазина."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class NotFound(StoreError):
    status_code = 404


class Forbidden(StoreError):
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class InvalidInput(StoreError):
    status_code = 400


class InvalidQuantity(InvalidInput):
    pass


class InsufficientStock(StoreError):
    """Запрошено больше, чем есть на складе для варианта (или варианта нет)."""

    status_code = 400

    def __init__(self, product_name: str | None = None, sku: str | None = None):
        self.product_name = product_name
        self.sku = sku
        msg = "Insufficient stock"
        if product_name:
            msg = f"Insufficient stock for {product_name}"
        super().__init__(msg)


class InvalidCoupon(StoreError):
    status_code = 400

    def __init__(self, code: str | None = None, reason: str | None = None):
        self.code = code
        msg = "Invalid coupon code"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class InvalidStatusTransition(StoreError):
    status_code = 400

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        if target == "cancelled":
            msg = f"Cannot cancel order in {current} status"
        else:
            msg = f"Cannot change order status from {current} to {target}"
        super().__init__(msg)


class EmptyCart(StoreError):
    status_code = 400

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class PaymentGatewayError(StoreError):
    """Ошибка внешнего платёжного шлюза (Stripe, M-Pesa)."""

    status_code = 502


class InternalError(StoreError):
    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
