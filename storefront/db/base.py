# storefront/db/base.py
# Общая declarative база для SQLAlchemy.
# Модуль не импортирует модели, чтобы избежать циклических импортов.

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def import_models() -> None:
    """Регистрирует все модели в Base.metadata (для create_all и alembic)."""
    import storefront.models.user  # noqa: F401
    import storefront.models.category  # noqa: F401
    import storefront.models.product  # noqa: F401
    import storefront.models.coupon  # noqa: F401
    import storefront.models.cart  # noqa: F401
    import storefront.models.order  # noqa: F401
