# storefront/services/notifications.py
# Email (SMTP) и SMS (Africa's Talking) уведомления о заказах.
# notify_* никогда не бросают исключений: ошибка отправки только логируется.
import logging
import re
import smtplib
from email.message import EmailMessage

import httpx

from storefront.core.config import settings
from storefront.core.phone import format_kenyan_phone

logger = logging.getLogger(__name__)


def html_to_text(html: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"<[^>]*>", " ", html)).strip()


def send_email(to: str, subject: str, html: str) -> bool:
    """Отправляет письмо. Бросает исключение при ошибке SMTP."""
    if not settings.EMAIL_HOST:
        logger.info(f"📭 EMAIL_HOST not set, skipping email '{subject}' to {to}")
        return False
    msg = EmailMessage()
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(html_to_text(html))
    msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=settings.HTTP_TIMEOUT) as smtp:
        if settings.EMAIL_USE_TLS:
            smtp.starttls()
        if settings.EMAIL_USER:
            smtp.login(settings.EMAIL_USER, settings.EMAIL_PASS)
        smtp.send_message(msg)
    logger.info(f"📧 Email '{subject}' sent to {to}")
    return True


def send_sms(phone: str, message: str) -> bool:
    """Отправляет SMS через HTTP API провайдера. Бросает исключение при ошибке."""
    if not settings.SMS_API_KEY:
        logger.info(f"📵 SMS_API_KEY not set, skipping SMS to {phone}")
        return False
    response = httpx.post(
        settings.SMS_API_URL,
        data={
            "username": settings.SMS_USERNAME,
            "to": format_kenyan_phone(phone),
            "message": message,
            "from": settings.SMS_SENDER_ID,
        },
        headers={"apiKey": settings.SMS_API_KEY, "Accept": "application/json"},
        timeout=settings.HTTP_TIMEOUT,
    )
    response.raise_for_status()
    logger.info(f"📱 SMS sent to {phone}")
    return True


# --- шаблоны ---

def order_confirmation_email(order) -> tuple[str, str]:
    rows = "".join(
        f"<tr><td>{item.product_name} ({item.sku})</td><td>{item.quantity}</td>"
        f"<td>{order.currency} {item.total:,.2f}</td></tr>"
        for item in order.items
    )
    html = f"""
    <h1>Thank you for your order!</h1>
    <p>Your order #{order.order_number} has been received.</p>
    <table>{rows}</table>
    <p>Subtotal: {order.currency} {order.subtotal:,.2f}</p>
    <p>Shipping: {order.currency} {order.shipping_cost:,.2f}</p>
    <p>Tax: {order.currency} {order.tax:,.2f}</p>
    <p>Discount: {order.currency} {order.discount:,.2f}</p>
    <p><b>Total: {order.currency} {order.total:,.2f}</b></p>
    <p>We'll notify you when your order ships.</p>
    """
    return f"Order Confirmation - {order.order_number}", html


def payment_confirmed_email(order) -> tuple[str, str]:
    html = f"""
    <h1>Payment Confirmed!</h1>
    <p>Your payment for order #{order.order_number} has been confirmed.</p>
    <p>Amount: {order.currency} {order.total:,.2f}</p>
    """
    return f"Payment Confirmed - Order {order.order_number}", html


def status_update_email(order) -> tuple[str, str]:
    status = order.status.value if hasattr(order.status, "value") else order.status
    html = f"<h1>Order #{order.order_number}</h1><p>Your order is now <b>{status}</b>.</p>"
    if order.tracking_number:
        html += f"<p>Tracking number: {order.tracking_number}</p>"
    if order.tracking_url:
        html += f'<p><a href="{order.tracking_url}">Track your package</a></p>'
    return f"Order {order.order_number} - {status}", html


def _deliver(user, subject: str, html: str, sms_text: str | None = None) -> None:
    if user is None:
        return
    try:
        send_email(user.email, subject, html)
    except Exception as e:
        logger.error(f"Failed to send email '{subject}' to {user.email}: {e}", exc_info=True)
    if sms_text and user.phone:
        try:
            send_sms(user.phone, sms_text)
        except Exception as e:
            logger.error(f"Failed to send SMS to {user.phone}: {e}", exc_info=True)


def notify_order_placed(user, order) -> None:
    subject, html = order_confirmation_email(order)
    _deliver(user, subject, html, f"Order {order.order_number} received. Total {order.currency} {order.total:,.2f}.")


def notify_payment_confirmed(user, order) -> None:
    subject, html = payment_confirmed_email(order)
    _deliver(user, subject, html, f"Payment for order {order.order_number} confirmed.")


def notify_status_changed(user, order) -> None:
    subject, html = status_update_email(order)
    _deliver(user, subject, html)
