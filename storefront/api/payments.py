# storefront/api/payments.py
# Роуты оплаты: Stripe, M-Pesa, наложенный платёж, webhook'и шлюзов.
import logging

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from storefront.core.errors import InvalidInput
from storefront.core.security import get_current_user, get_db
from storefront.models.user import User
from storefront.schemas.order import order_out
from storefront.schemas.payment import CashOnDeliveryIn, FeesIn, MpesaPushIn, StripeIntentIn
from storefront.services import payments
from storefront.services.gateways import (
    PaymentGateway,
    calculate_payment_fees,
    construct_stripe_event,
    get_payment_gateway,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe/create-payment-intent")
def create_stripe_payment_intent(payload: StripeIntentIn, db: Session = Depends(get_db),
                                 user: User = Depends(get_current_user),
                                 gateway: PaymentGateway = Depends(get_payment_gateway)):
    result = payments.create_stripe_intent(db, gateway, user, payload.order_id)
    return {
        "success": True,
        "clientSecret": result["client_secret"],
        "paymentIntentId": result["payment_intent_id"],
    }


@router.post("/mpesa/stk-push")
def initiate_mpesa_payment(payload: MpesaPushIn, db: Session = Depends(get_db),
                           user: User = Depends(get_current_user),
                           gateway: PaymentGateway = Depends(get_payment_gateway)):
    result = payments.initiate_mpesa(db, gateway, user, payload.order_id, payload.phone)
    return {
        "success": True,
        "message": result["message"],
        "checkoutRequestId": result["checkout_request_id"],
        "isSimulated": result.get("is_simulated", False),
    }


@router.post("/cash-on-delivery")
def process_cash_on_delivery(payload: CashOnDeliveryIn, db: Session = Depends(get_db),
                             user: User = Depends(get_current_user)):
    order = payments.process_cash_on_delivery(db, user, payload.order_id)
    return {"success": True, "message": "Order confirmed for cash on delivery", "order": order_out(order)}


@router.get("/verify/{order_id}")
def verify_payment(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user),
                   gateway: PaymentGateway = Depends(get_payment_gateway)):
    return {"success": True, **payments.verify_payment(db, gateway, user, order_id)}


@router.post("/calculate-fees")
def calculate_fees(payload: FeesIn):
    return {"success": True, **calculate_payment_fees(payload.amount, payload.payment_method)}


@router.post("/stripe/webhook")
async def stripe_webhook(request: Request, stripe_signature: str | None = Header(None),
                         db: Session = Depends(get_db),
                         gateway: PaymentGateway = Depends(get_payment_gateway)):
    payload = await request.body()
    event = construct_stripe_event(payload, stripe_signature)
    payments.handle_stripe_event(db, gateway, event)
    return {"received": True}


@router.post("/mpesa/callback")
async def mpesa_callback(request: Request, db: Session = Depends(get_db)):
    try:
        body = await request.json()
    except ValueError:
        raise InvalidInput("Invalid callback payload")
    payments.handle_mpesa_callback(db, body)
    # Daraja ждёт именно такой ответ
    return {"ResultCode": 0, "ResultDesc": "Accepted"}
