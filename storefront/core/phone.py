# storefront/core/phone.py
# Нормализация кенийских номеров телефона (M-Pesa и SMS).
import re

from storefront.core.errors import InvalidInput

KENYAN_PHONE_RE = re.compile(r"254[17]\d{8}")


def format_kenyan_phone(phone: str) -> str:
    """0712345678 / +254712345678 / 712345678 / 0712 345 678 -> 254712345678."""
    digits = re.sub(r"[\s\-()]", "", str(phone or "")).lstrip("+")
    if digits.startswith("0"):
        digits = "254" + digits[1:]
    elif not digits.startswith("254"):
        digits = "254" + digits
    if not KENYAN_PHONE_RE.fullmatch(digits):
        raise InvalidInput("Invalid Kenyan phone number")
    return digits
