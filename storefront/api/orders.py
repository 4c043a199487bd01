# storefront/api/orders.py
# Роуты заказов: оформление, история, отмена, публичное отслеживание, админка.
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.core.security import get_current_user, get_db, require_admin
from storefront.models.user import User
from storefront.schemas.order import (
    CancelIn,
    OrderCreate,
    PaymentStatusIn,
    StatusUpdateIn,
    order_out,
    page_out,
    track_out,
)
from storefront.services import orders as order_service

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(payload: OrderCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    order = order_service.place_order(
        db,
        user,
        payload.shipping_address.model_dump(),
        payload.payment_method,
        payload.shipping_method,
        payload.notes,
    )
    return {"success": True, "order": order_out(order)}


@router.get("")
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = order_service.list_orders(db, user_id=user.id, status=status, page=page, limit=limit)
    return {"success": True, **page_out(result)}


# публичный роут, объявлен до /{order_id}
@router.get("/track/{order_number}")
def track_order(order_number: str, db: Session = Depends(get_db)):
    return {"success": True, "order": track_out(order_service.track_order(db, order_number))}


@router.get("/admin/all")
def list_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = order_service.list_orders(db, status=status, page=page, limit=limit)
    return {"success": True, **page_out(result)}


@router.get("/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"success": True, "order": order_out(order_service.get_order_for(db, order_id, user))}


@router.put("/{order_id}/cancel")
def cancel_order(order_id: int, payload: Optional[CancelIn] = None, db: Session = Depends(get_db),
                 user: User = Depends(get_current_user)):
    reason = payload.reason if payload else None
    order = order_service.cancel_order(db, order_id, user, reason)
    return {"success": True, "message": "Order cancelled successfully", "order": order_out(order)}


@router.put("/{order_id}/status")
def update_order_status(order_id: int, payload: StatusUpdateIn, db: Session = Depends(get_db),
                        admin: User = Depends(require_admin)):
    order = order_service.update_status(
        db, order_id, payload.status, payload.tracking_number, payload.tracking_url, payload.reason
    )
    return {"success": True, "order": order_out(order)}


@router.put("/{order_id}/payment-status")
def update_payment_status(order_id: int, payload: PaymentStatusIn, db: Session = Depends(get_db),
                          admin: User = Depends(require_admin)):
    order = order_service.update_payment_status(db, order_id, payload.payment_status)
    return {"success": True, "order": order_out(order)}
