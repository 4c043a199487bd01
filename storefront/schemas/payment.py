# storefront/schemas/payment.py
# Тела запросов оплаты. Сумму платежа клиент не передаёт: она всегда равна итогу заказа.
from pydantic import BaseModel, Field


class StripeIntentIn(BaseModel):
    order_id: int


class MpesaPushIn(BaseModel):
    order_id: int
    phone: str = Field(..., min_length=9)


class CashOnDeliveryIn(BaseModel):
    order_id: int


class FeesIn(BaseModel):
    amount: float = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1)
