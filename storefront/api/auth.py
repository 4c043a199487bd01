# storefront/api/auth.py
# Роуты для регистрации и получения JWT токена.
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from datetime import timedelta

from storefront.core import security
from storefront.core.config import settings
from storefront.models.user import User, RoleEnum

logger = logging.getLogger(__name__)

router = APIRouter()


class RegisterIn(BaseModel):
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=72)
    full_name: Optional[str] = None
    phone: Optional[str] = None


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(security.get_db)):
    """
    Регистрация покупателя: email + password.
    По умолчанию роль = customer.
    """
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        email=email,
        hashed_password=security.get_password_hash(payload.password),
        full_name=payload.full_name,
        phone=payload.phone,
        role=RoleEnum.customer,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"👤 Registered user {user.id}")
    return {"success": True, "user": {"id": user.id, "email": user.email, "role": user.role.value}}


@router.post("/token")
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(security.get_db)):
    """
    Логин: возвращает access_token (JWT).
    OAuth2PasswordRequestForm ожидает username и password: используем email как username.
    """
    user = db.query(User).filter(User.email == form_data.username.lower()).first()
    if not user or not user.hashed_password or not security.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Incorrect credentials")
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = security.create_access_token(subject=str(user.id), expires_delta=access_token_expires)
    return {"access_token": token, "token_type": "bearer"}
