from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..enums.order_enums import OrderStatus, PaymentMethod


class CartLine(BaseModel):
    item_id: int
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    items: List[CartLine]


class WalkInOrderCreate(OrderCreate):
    payment_method: PaymentMethod


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    menu_item_id: Optional[int] = None
    name: str
    price_at_time: float
    quantity: int

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    invoice_number: str
    total_amount: float
    status: OrderStatus
    is_walk_in: bool
    payment_method: Optional[PaymentMethod] = None
    user_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    order_items: List[OrderItemOut] = []

    class Config:
        from_attributes = True


class PaymentPayload(BaseModel):
    upi_uri: str
    qr_code: str
    upi_id: str
    payee_name: str
    amount: float


class OrderCheckoutResponse(BaseModel):
    success: bool = True
    order: OrderOut
    payment: Optional[PaymentPayload] = None


class OrderResponse(BaseModel):
    success: bool = True
    order: OrderOut
