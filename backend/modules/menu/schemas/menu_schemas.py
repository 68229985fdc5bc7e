# backend/modules/menu/schemas/menu_schemas.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class MenuItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    stock: int = Field(..., ge=0)
    unlimited_stock: bool = False
    is_available: bool = True


class MenuItemCreate(MenuItemBase):
    pass


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    stock: Optional[int] = Field(None, ge=0)
    unlimited_stock: Optional[bool] = None
    is_available: Optional[bool] = None


class MenuItem(BaseModel):
    id: int
    name: str
    price: float
    description: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    stock: int
    unlimited_stock: bool
    is_available: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MenuItemListResponse(BaseModel):
    success: bool = True
    data: List[MenuItem]
