# storefront/services/coupons.py
# Проверка и учёт использования купонов из таблицы coupons.
import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.core.errors import InvalidCoupon
from storefront.models.coupon import Coupon, DiscountType

logger = logging.getLogger(__name__)

# Купоны, которые магазин выдавал с самого начала
DEFAULT_COUPONS = (
    {"code": "WELCOME10", "discount": 10.0, "discount_type": DiscountType.percentage},
    {"code": "SAVE500", "discount": 500.0, "discount_type": DiscountType.fixed},
)


def seed_default_coupons(db: Session) -> int:
    """Создаёт купоны по умолчанию, если их ещё нет. Возвращает число созданных."""
    created = 0
    for data in DEFAULT_COUPONS:
        if db.query(Coupon).filter(Coupon.code == data["code"]).first():
            continue
        db.add(Coupon(**data))
        created += 1
    if created:
        db.commit()
        logger.info(f"✅ Seeded {created} default coupon(s)")
    return created


def get_valid_coupon(db: Session, code: str, now: datetime | None = None) -> Coupon:
    """Возвращает купон по коду или бросает InvalidCoupon."""
    now = now or datetime.utcnow()
    code = (code or "").strip().upper()
    coupon = db.query(Coupon).filter(Coupon.code == code).first()
    if coupon is None or not coupon.is_active:
        raise InvalidCoupon(code)
    if coupon.valid_from and now < coupon.valid_from:
        raise InvalidCoupon(code, "not yet active")
    if coupon.valid_until and now > coupon.valid_until:
        raise InvalidCoupon(code, "expired")
    if coupon.max_uses is not None and coupon.times_used >= coupon.max_uses:
        raise InvalidCoupon(code, "usage limit reached")
    return coupon


def redeem(db: Session, code: str) -> None:
    """
    Атомарно увеличивает счётчик использований в текущей транзакции.
    Если лимит исчерпан конкурентным заказом, бросает InvalidCoupon.
    """
    stmt = (
        update(Coupon)
        .where(Coupon.code == code)
        .where((Coupon.max_uses.is_(None)) | (Coupon.times_used < Coupon.max_uses))
        .values(times_used=Coupon.times_used + 1)
        .execution_options(synchronize_session=False)
    )
    if db.execute(stmt).rowcount == 0:
        raise InvalidCoupon(code, "usage limit reached")
