# storefront/services/gateways.py
# Клиенты внешних платёжных шлюзов: Stripe (SDK) и M-Pesa Daraja (STK push).
import base64
import json
import logging
import math
import time
from datetime import datetime

import httpx
import stripe

from storefront.core.config import settings
from storefront.core.errors import InvalidInput, PaymentGatewayError
from storefront.core.phone import format_kenyan_phone

logger = logging.getLogger(__name__)

# процент и фиксированная часть комиссии по способу оплаты
PAYMENT_FEES = {
    "stripe": {"percentage": 0.035, "fixed": 15},
    "mpesa": {"percentage": 0.01, "fixed": 0},
    "cash_on_delivery": {"percentage": 0, "fixed": 0},
}


def calculate_payment_fees(amount: float, payment_method: str) -> dict:
    method_fees = PAYMENT_FEES.get(payment_method, PAYMENT_FEES["stripe"])
    percentage_fee = amount * method_fees["percentage"]
    fee = math.floor(percentage_fee + method_fees["fixed"] + 0.5)
    return {
        "amount": amount,
        "fee": fee,
        "total": amount + fee,
        "breakdown": {
            "percentageFee": percentage_fee,
            "fixedFee": method_fees["fixed"],
        },
    }


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def construct_stripe_event(payload: bytes, sig_header: str | None) -> dict:
    """
    Проверяет заголовок Stripe-Signature через stripe.Webhook.construct_event.
    Бросает InvalidInput, если подпись не сходится, устарела или тело не JSON.
    """
    if not sig_header or not settings.STRIPE_WEBHOOK_SECRET:
        raise InvalidInput("Webhook signature verification failed")
    try:
        stripe.Webhook.construct_event(
            payload,
            sig_header,
            settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.STRIPE_WEBHOOK_TOLERANCE,
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe webhook rejected: {e}")
        raise InvalidInput("Webhook signature verification failed")
    except ValueError:
        raise InvalidInput("Invalid webhook payload")
    # подпись проверена, дальше работаем с обычным dict
    return json.loads(payload)


class PaymentGateway:
    """Обёртка над Stripe SDK и HTTP API M-Pesa. transport подменяется в тестах."""

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    def _client(self, base_url: str) -> httpx.Client:
        return httpx.Client(base_url=base_url, timeout=settings.HTTP_TIMEOUT, transport=self._transport)

    # --- Stripe ---

    def _stripe_call(self, method, *args, **params):
        if not settings.STRIPE_SECRET_KEY:
            raise PaymentGatewayError("Stripe is not configured")
        try:
            return method(*args, api_key=settings.STRIPE_SECRET_KEY, **params)
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.error(f"Stripe error: {message}")
            raise PaymentGatewayError(f"Payment processing failed: {message}")

    def create_stripe_payment_intent(self, amount: float, currency: str = "kes", metadata: dict | None = None) -> dict:
        metadata = metadata or {}
        intent = self._stripe_call(
            stripe.PaymentIntent.create,
            amount=to_minor_units(amount),
            currency=currency.lower(),
            description=metadata.get("description", "Kibanda Fashion Payment"),
            metadata={key: str(value) for key, value in metadata.items()},
        )
        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "amount": intent.amount / 100,
        }

    def retrieve_stripe_payment_intent(self, payment_intent_id: str) -> dict:
        intent = self._stripe_call(stripe.PaymentIntent.retrieve, payment_intent_id)
        return {
            "id": intent.id,
            "status": intent.status,
            "amount": getattr(intent, "amount", 0) or 0,
            "amount_received": getattr(intent, "amount_received", 0) or 0,
            "currency": getattr(intent, "currency", None),
        }

    def retrieve_stripe_receipt_url(self, charge_id: str) -> str | None:
        charge = self._stripe_call(stripe.Charge.retrieve, charge_id)
        return getattr(charge, "receipt_url", None)

    # --- M-Pesa ---

    def _mpesa_password(self, timestamp: str) -> str:
        raw = f"{settings.MPESA_SHORTCODE}{settings.MPESA_PASSKEY}{timestamp}"
        return base64.b64encode(raw.encode()).decode()

    def _mpesa_call(self, path: str, payload: dict) -> dict:
        try:
            with self._client(settings.MPESA_API_BASE) as client:
                token_response = client.get(
                    "/oauth/v1/generate",
                    params={"grant_type": "client_credentials"},
                    auth=(settings.MPESA_CONSUMER_KEY, settings.MPESA_CONSUMER_SECRET),
                )
                token_response.raise_for_status()
                access_token = token_response.json()["access_token"]
                response = client.post(path, json=payload, headers={"Authorization": f"Bearer {access_token}"})
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.error(f"MPESA request to {path} failed: {e}")
            raise PaymentGatewayError(f"MPESA payment failed: {e}")

    def initiate_mpesa_payment(self, phone: str, amount: float, account_reference: str) -> dict:
        formatted_phone = format_kenyan_phone(phone)

        if settings.MPESA_SIMULATE:
            stamp = str(int(time.time() * 1000))
            logger.info(f"MPESA simulation: phone={formatted_phone} amount={amount} ref={account_reference}")
            return {
                "message": "MPESA payment initiated successfully",
                "checkout_request_id": "SIM" + stamp,
                "mpesa_code": "MPS" + stamp[-6:],
                "is_simulated": True,
            }

        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        data = self._mpesa_call("/mpesa/stkpush/v1/processrequest", {
            "BusinessShortCode": settings.MPESA_SHORTCODE,
            "Password": self._mpesa_password(timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": math.ceil(amount),
            "PartyA": formatted_phone,
            "PartyB": settings.MPESA_SHORTCODE,
            "PhoneNumber": formatted_phone,
            "CallBackURL": settings.MPESA_CALLBACK_URL,
            "AccountReference": account_reference,
            "TransactionDesc": "Kibanda Fashion Purchase",
        })
        return {
            "message": "MPESA payment initiated",
            "checkout_request_id": data.get("CheckoutRequestID"),
            "mpesa_code": None,
            "is_simulated": False,
        }

    def check_mpesa_transaction(self, checkout_request_id: str) -> dict:
        if settings.MPESA_SIMULATE:
            return {"status": "Completed", "is_simulated": True}
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        data = self._mpesa_call("/mpesa/stkpushquery/v1/query", {
            "BusinessShortCode": settings.MPESA_SHORTCODE,
            "Password": self._mpesa_password(timestamp),
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
        })
        return {"status": data.get("ResultDesc"), "is_simulated": False}


def get_payment_gateway() -> PaymentGateway:
    """Зависимость FastAPI; в тестах переопределяется через dependency_overrides."""
    return PaymentGateway()
