# storefront/api/products.py
# Каталог товаров: просмотр для всех, создание, изменение, снятие с продажи и остатки для администратора.
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.core.security import get_db, require_admin
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.models.user import User
from storefront.schemas.product import ProductCreate, ProductOut, ProductUpdate, StockUpdate, VariantOut
from storefront.services import catalog, inventory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def list_products(q: Optional[str] = Query(None), category: Optional[str] = Query(None),
                  db: Session = Depends(get_db)):
    query = db.query(Product).filter(Product.is_active.is_(True))
    if q:
        pattern = f"%{q}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.brand.ilike(pattern),
            Product.description.ilike(pattern),
        ))
    if category:
        # неизвестная категория даёт пустой список
        query = query.join(Category, Product.category_id == Category.id).filter(Category.slug == category)
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return {"success": True, "count": len(products), "products": [ProductOut.model_validate(p) for p in products]}


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    return {"success": True, "product": ProductOut.model_validate(inventory.get_active_product(db, product_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    product = catalog.create_product(
        db,
        name=payload.name,
        price=payload.price,
        variants=[v.model_dump() for v in payload.variants],
        description=payload.description,
        brand=payload.brand,
        category_id=payload.category_id,
        images=payload.images,
    )
    logger.info(f"📦 Product {product.id} ({product.slug}) created by admin {admin.id}")
    return {"success": True, "product": ProductOut.model_validate(product)}


@router.put("/{product_id}")
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db),
                   admin: User = Depends(require_admin)):
    product = catalog.update_product(db, product_id, payload.model_dump(exclude_unset=True))
    logger.info(f"Product {product.id} updated by admin {admin.id}")
    return {"success": True, "product": ProductOut.model_validate(product)}


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    product = catalog.deactivate_product(db, product_id)
    logger.info(f"🗑 Product {product.id} deactivated by admin {admin.id}")
    return {"success": True, "message": "Product deleted successfully"}


@router.put("/{product_id}/variants/{sku}/stock")
def update_stock(product_id: int, sku: str, payload: StockUpdate, db: Session = Depends(get_db),
                 admin: User = Depends(require_admin)):
    variant = inventory.set_stock(db, product_id, sku, payload.stock)
    logger.info(f"Stock of {sku} set to {payload.stock} by admin {admin.id}")
    return {"success": True, "variant": VariantOut.model_validate(variant)}
