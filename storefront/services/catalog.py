# storefront/services/catalog.py
# Каталог: категории и товары (создание, изменение, снятие с продажи).
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.core.errors import InvalidInput, NotFound
from storefront.models.category import Category
from storefront.models.product import Product, ProductVariant, slugify
from storefront.services.inventory import get_product

logger = logging.getLogger(__name__)

CATEGORY_PRODUCTS_LIMIT = 12
NULLABLE_PRODUCT_FIELDS = {"description", "brand", "category_id"}


def list_categories(db: Session) -> list[Category]:
    return (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
        .all()
    )


def get_category(db: Session, key: str) -> Category:
    """Категория по id или slug."""
    query = db.query(Category).filter(Category.is_active.is_(True))
    if str(key).isdigit():
        query = query.filter(or_(Category.id == int(key), Category.slug == str(key)))
    else:
        query = query.filter(Category.slug == key)
    category = query.first()
    if category is None:
        raise NotFound("Category not found")
    return category


def category_products(db: Session, category: Category) -> list[Product]:
    return (
        db.query(Product)
        .filter(Product.category_id == category.id, Product.is_active.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(CATEGORY_PRODUCTS_LIMIT)
        .all()
    )


def create_category(db: Session, name: str, description: str | None = None, parent_id: int | None = None,
                    is_featured: bool = False, sort_order: int = 0) -> Category:
    slug = slugify(name)
    if db.query(Category).filter(or_(Category.name == name, Category.slug == slug)).first():
        raise InvalidInput("Category already exists")
    if parent_id is not None and db.get(Category, parent_id) is None:
        raise InvalidInput("Parent category not found")

    category = Category(
        name=name,
        slug=slug,
        description=description,
        parent_id=parent_id,
        is_featured=is_featured,
        sort_order=sort_order,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info(f"🗂 Category {category.id} ({category.slug}) created")
    return category


def _ensure_category(db: Session, category_id: int | None) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise InvalidInput("Category not found")


def _ensure_unique_slug(db: Session, slug: str, product_id: int | None = None) -> None:
    query = db.query(Product).filter(Product.slug == slug)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first():
        raise InvalidInput("Product with this name already exists")


def create_product(db: Session, name: str, price: float, variants: list[dict], description: str | None = None,
                   brand: str | None = None, category_id: int | None = None,
                   images: list[str] | None = None) -> Product:
    slug = slugify(name)
    _ensure_unique_slug(db, slug)
    _ensure_category(db, category_id)
    skus = [v["sku"] for v in variants]
    if len(set(skus)) != len(skus) or (
        skus and db.query(ProductVariant).filter(ProductVariant.sku.in_(skus)).first()
    ):
        raise InvalidInput("Variant SKU must be unique")

    product = Product(
        name=name,
        slug=slug,
        description=description,
        price=price,
        brand=brand,
        category_id=category_id,
        images=images or [],
        variants=[ProductVariant(**v) for v in variants],
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def update_product(db: Session, product_id: int, changes: dict) -> Product:
    """
    Меняет только переданные поля. Новая цена не трогает цены,
    уже зафиксированные в корзинах и заказах.
    """
    product = get_product(db, product_id)
    # None допустим только для необязательных полей
    changes = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_PRODUCT_FIELDS}
    if "name" in changes and changes["name"] != product.name:
        slug = slugify(changes["name"])
        _ensure_unique_slug(db, slug, product.id)
        product.slug = slug
    if "category_id" in changes:
        _ensure_category(db, changes["category_id"])
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product


def deactivate_product(db: Session, product_id: int) -> Product:
    """Мягкое удаление: товар скрывается из каталога, заказы сохраняют свои строки."""
    product = get_product(db, product_id)
    product.is_active = False
    db.commit()
    db.refresh(product)
    return product
