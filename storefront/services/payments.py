# storefront/services/payments.py
# Оплата заказов: создание платежей в шлюзах, наложенный платёж,
# обработка webhook'ов Stripe и callback'ов M-Pesa.
import logging

from sqlalchemy.orm import Session

from storefront.core.errors import InvalidInput, PaymentGatewayError
from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.services import notifications
from storefront.services.gateways import PaymentGateway, to_minor_units
from storefront.services.orders import commit_or_fail, confirm_if_pending, ensure_transition, get_owned_order

logger = logging.getLogger(__name__)


def _payable_order(db: Session, user, order_id: int) -> Order:
    order = get_owned_order(db, order_id, user)
    if PaymentStatus(order.payment_status) == PaymentStatus.completed:
        raise InvalidInput("Order is already paid")
    if OrderStatus(order.status) in (OrderStatus.cancelled, OrderStatus.refunded):
        raise InvalidInput(f"Cannot pay for order in {OrderStatus(order.status).value} status")
    return order


def create_stripe_intent(db: Session, gateway: PaymentGateway, user, order_id: int) -> dict:
    """Сумма платежа всегда равна итогу заказа."""
    order = _payable_order(db, user, order_id)
    result = gateway.create_stripe_payment_intent(
        order.total,
        order.currency,
        {
            "orderId": order.id,
            "orderNumber": order.order_number,
            "userId": user.id,
        },
    )
    order.payment_intent_id = result["payment_intent_id"]
    order.payment_status = PaymentStatus.processing
    commit_or_fail(db, f"Store payment intent for order {order.order_number}")
    logger.info(f"💳 Stripe intent {result['payment_intent_id']} created for order {order.order_number}")
    return result


def initiate_mpesa(db: Session, gateway: PaymentGateway, user, order_id: int, phone: str) -> dict:
    order = _payable_order(db, user, order_id)
    result = gateway.initiate_mpesa_payment(phone, order.total, order.order_number)
    order.mpesa_request_id = result["checkout_request_id"]
    if result.get("mpesa_code"):
        order.mpesa_code = result["mpesa_code"]
    order.payment_status = PaymentStatus.processing
    commit_or_fail(db, f"Store MPESA request for order {order.order_number}")
    logger.info(f"📲 MPESA push {result['checkout_request_id']} for order {order.order_number}")
    return result


def process_cash_on_delivery(db: Session, user, order_id: int) -> Order:
    order = get_owned_order(db, order_id, user)
    if PaymentMethod(order.payment_method) != PaymentMethod.cash_on_delivery:
        raise InvalidInput("Order is not a cash on delivery order")
    if OrderStatus(order.status) != OrderStatus.confirmed:
        order.status = ensure_transition(order, OrderStatus.confirmed)
    order.payment_status = PaymentStatus.pending
    commit_or_fail(db, f"Confirm cash on delivery order {order.order_number}")
    db.refresh(order)
    return order


def verify_payment(db: Session, gateway: PaymentGateway, user, order_id: int) -> dict:
    order = get_owned_order(db, order_id, user)
    verification = None
    method = PaymentMethod(order.payment_method)
    if method == PaymentMethod.stripe and order.payment_intent_id:
        intent = gateway.retrieve_stripe_payment_intent(order.payment_intent_id)
        verification = {
            "success": intent["status"] == "succeeded" and intent["amount_received"] >= to_minor_units(order.total),
            "status": intent["status"],
            "amount": intent["amount"] / 100,
            "amountReceived": intent["amount_received"] / 100,
            "currency": intent["currency"],
        }
    elif method == PaymentMethod.mpesa and order.mpesa_request_id:
        verification = gateway.check_mpesa_transaction(order.mpesa_request_id)
    return {
        "orderStatus": OrderStatus(order.status).value,
        "paymentStatus": PaymentStatus(order.payment_status).value,
        "verificationResult": verification,
    }


def _covers_total(order: Order, paid_minor_units, source: str) -> bool:
    """Платёж меньше итога заказа не подтверждает оплату."""
    expected = to_minor_units(order.total)
    if paid_minor_units is None or paid_minor_units < expected:
        logger.warning(
            f"⚠️ {source} paid {(paid_minor_units or 0) / 100:.2f} of {order.total:.2f} "
            f"for order {order.order_number}, payment left as {PaymentStatus(order.payment_status).value}"
        )
        return False
    return True


def _mark_paid(db: Session, order: Order) -> None:
    order.payment_status = PaymentStatus.completed
    confirm_if_pending(order)
    commit_or_fail(db, f"Mark order {order.order_number} paid")
    db.refresh(order)
    logger.info(f"✅ Payment completed for order {order.order_number}")
    notifications.notify_payment_confirmed(order.user, order)


def handle_stripe_event(db: Session, gateway: PaymentGateway, event: dict) -> bool:
    """Обрабатывает событие Stripe. Возвращает True, если событие изменило заказ."""
    event_type = event.get("type")
    intent = (event.get("data") or {}).get("object") or {}
    if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        logger.info(f"Unhandled Stripe event type {event_type}")
        return False

    order = db.query(Order).filter(Order.payment_intent_id == intent.get("id")).first()
    if order is None:
        logger.warning(f"No order for payment intent {intent.get('id')}")
        return False

    if event_type == "payment_intent.succeeded":
        if not _covers_total(order, intent.get("amount_received"), f"Stripe intent {intent.get('id')}"):
            return False
        order.transaction_id = intent.get("id")
        charge_id = intent.get("latest_charge")
        if isinstance(charge_id, dict):
            charge_id = charge_id.get("id")
        if charge_id:
            try:
                order.receipt_url = gateway.retrieve_stripe_receipt_url(charge_id)
            except PaymentGatewayError as e:
                logger.warning(f"Receipt for charge {charge_id} not fetched: {e.message}")
        _mark_paid(db, order)
    else:
        order.payment_status = PaymentStatus.failed
        commit_or_fail(db, f"Mark order {order.order_number} payment failed")
        logger.warning(f"❌ Stripe payment failed for order {order.order_number}")
    return True


def handle_mpesa_callback(db: Session, payload: dict) -> bool:
    callback = ((payload or {}).get("Body") or {}).get("stkCallback") or {}
    request_id = callback.get("CheckoutRequestID")
    order = db.query(Order).filter(Order.mpesa_request_id == request_id).first() if request_id else None
    if order is None:
        logger.warning(f"No order for MPESA request {request_id}")
        return False

    if callback.get("ResultCode") == 0:
        items = (callback.get("CallbackMetadata") or {}).get("Item") or []
        values = {i.get("Name"): i.get("Value") for i in items}
        amount = values.get("Amount")
        paid = to_minor_units(float(amount)) if amount is not None else None
        if not _covers_total(order, paid, f"MPESA request {request_id}"):
            return False
        receipt = values.get("MpesaReceiptNumber")
        if receipt:
            order.mpesa_code = receipt
            order.transaction_id = receipt
        _mark_paid(db, order)
    else:
        order.payment_status = PaymentStatus.failed
        commit_or_fail(db, f"Mark order {order.order_number} payment failed")
        logger.warning(f"❌ MPESA payment failed for order {order.order_number}: {callback.get('ResultDesc')}")
    return True
