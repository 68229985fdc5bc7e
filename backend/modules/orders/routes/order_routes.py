# backend/modules/orders/routes/order_routes.py

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from core.auth import Caller, get_current_user
from core.database import get_db
from modules.settings.routes.settings_routes import get_payment_config
from modules.settings.schemas.settings_schemas import PaymentConfig
from modules.settings.services.settings_service import SettingsService
from ..schemas.order_schemas import (
    OrderCheckoutResponse,
    OrderCreate,
    OrderOut,
    OrderResponse,
)
from ..services.order_service import OrderService
from ..services.receipt_service import ReceiptRenderer


router = APIRouter(prefix="/orders", tags=["Orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.post(
    "",
    response_model=OrderCheckoutResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    order_data: OrderCreate,
    current_user: Caller = Depends(get_current_user),
    payment_config: PaymentConfig = Depends(get_payment_config),
    order_service: OrderService = Depends(get_order_service),
):
    """
    Check out the cart.

    The order is created Pending; stock is only taken once payment is
    confirmed. The response carries the UPI link and QR code to pay with.
    """
    order, payment = order_service.create_order(
        current_user, order_data.items, payment_config
    )
    return {"success": True, "order": order, "payment": payment}


@router.get("")
async def list_my_orders(
    current_user: Caller = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
):
    orders = order_service.list_user_orders(current_user)
    return {
        "success": True,
        "orders": [OrderOut.model_validate(o) for o in orders],
    }


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: Caller = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
):
    return {"success": True, "order": order_service.get_order(current_user, order_id)}


@router.post("/{order_id}/confirm-payment", response_model=OrderResponse)
async def confirm_payment(
    order_id: int,
    current_user: Caller = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
):
    order = order_service.confirm_payment(current_user, order_id)
    return {"success": True, "order": order}


@router.get("/{order_id}/receipt", response_class=PlainTextResponse)
async def get_receipt(
    order_id: int,
    current_user: Caller = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
    db: Session = Depends(get_db),
):
    order = order_service.get_order(current_user, order_id)
    profile = SettingsService(db).get_all()
    return ReceiptRenderer().render(order, profile)
