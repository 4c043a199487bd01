# storefront/schemas/product.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VariantCreate(BaseModel):
    sku: str = Field(..., min_length=1)
    size: Optional[str] = None
    color_name: Optional[str] = None
    color_hex: Optional[str] = None
    stock: int = Field(0, ge=0)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    brand: Optional[str] = None
    category_id: Optional[int] = None
    images: List[str] = Field(default_factory=list)
    variants: List[VariantCreate] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """Частичное обновление: меняются только переданные поля."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    brand: Optional[str] = None
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None


class StockUpdate(BaseModel):
    stock: int = Field(..., ge=0)


class VariantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    size: Optional[str] = None
    color_name: Optional[str] = None
    color_hex: Optional[str] = None
    stock: int


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: float
    brand: Optional[str] = None
    category_id: Optional[int] = None
    images: List[str] = []
    is_active: bool
    variants: List[VariantOut] = []
