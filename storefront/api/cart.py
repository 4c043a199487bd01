# storefront/api/cart.py
# Роуты корзины текущего пользователя.
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.security import get_current_user, get_db
from storefront.models.user import User
from storefront.schemas.cart import AddToCartIn, CouponIn, UpdateCartItemIn, cart_out
from storefront.services import cart as cart_service

router = APIRouter()


def _ok(cart) -> dict:
    return {"success": True, "cart": cart_out(cart)}


@router.get("")
def get_cart(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _ok(cart_service.get_or_create_cart(db, user.id))


@router.post("")
def add_to_cart(payload: AddToCartIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    cart = cart_service.add_item(db, user.id, payload.product_id, payload.variant.sku, payload.quantity)
    return _ok(cart)


@router.delete("")
def clear_cart(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    cart = cart_service.clear_cart(db, user.id)
    return {"success": True, "message": "Cart cleared successfully", "cart": cart_out(cart)}


@router.post("/coupon")
def apply_coupon(payload: CouponIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _ok(cart_service.apply_coupon(db, user.id, payload.coupon_code))


@router.delete("/coupon")
def remove_coupon(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _ok(cart_service.remove_coupon(db, user.id))


@router.put("/{item_id}")
def update_cart_item(item_id: int, payload: UpdateCartItemIn, db: Session = Depends(get_db),
                     user: User = Depends(get_current_user)):
    return _ok(cart_service.update_item(db, user.id, item_id, payload.quantity))


@router.delete("/{item_id}")
def remove_cart_item(item_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _ok(cart_service.remove_item(db, user.id, item_id))
