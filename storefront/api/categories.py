# storefront/api/categories.py
# Категории каталога: список и карточка категории публично, создание для администратора.
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.core.security import get_db, require_admin
from storefront.models.user import User
from storefront.schemas.category import CategoryCreate, CategoryOut
from storefront.schemas.product import ProductOut
from storefront.services import catalog

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    categories = catalog.list_categories(db)
    return {
        "success": True,
        "count": len(categories),
        "categories": [CategoryOut.model_validate(c) for c in categories],
    }


@router.get("/{category_key}")
def get_category(category_key: str, db: Session = Depends(get_db)):
    """category_key: id или slug."""
    category = catalog.get_category(db, category_key)
    return {
        "success": True,
        "category": CategoryOut.model_validate(category),
        "products": [ProductOut.model_validate(p) for p in catalog.category_products(db, category)],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    category = catalog.create_category(db, **payload.model_dump())
    logger.info(f"Category {category.slug} created by admin {admin.id}")
    return {"success": True, "category": CategoryOut.model_validate(category)}
