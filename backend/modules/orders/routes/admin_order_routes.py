# backend/modules/orders/routes/admin_order_routes.py

from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from core.auth import Caller, require_admin
from core.database import get_session_factory
from modules.settings.routes.settings_routes import get_payment_config
from modules.settings.schemas.settings_schemas import PaymentConfig
from ..enums.order_enums import OrderStatus
from ..schemas.order_schemas import (
    OrderCheckoutResponse,
    OrderOut,
    OrderResponse,
    OrderStatusUpdate,
    WalkInOrderCreate,
)
from ..services.live_feed_service import LiveOrderFeed
from ..services.order_service import OrderService
from .order_routes import get_order_service


router = APIRouter(prefix="/admin", tags=["Order Management"])


@router.get("/orders")
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    current_user: Caller = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
):
    orders = order_service.list_orders(current_user, status_filter, limit)
    return {
        "success": True,
        "orders": [OrderOut.model_validate(o) for o in orders],
    }


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    current_user: Caller = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
):
    order = order_service.update_status(current_user, order_id, data.status)
    return {"success": True, "order": order}


@router.post(
    "/counter/orders",
    response_model=OrderCheckoutResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_walk_in_order(
    order_data: WalkInOrderCreate,
    current_user: Caller = Depends(require_admin),
    payment_config: PaymentConfig = Depends(get_payment_config),
    order_service: OrderService = Depends(get_order_service),
):
    """
    Counter sale.

    - **cash**: recorded Paid immediately and stock is taken
    - **upi**: recorded Pending with a QR code; confirm it once paid
    """
    order, payment = order_service.create_walk_in_order(
        current_user, order_data.items, order_data.payment_method, payment_config
    )
    return {"success": True, "order": order, "payment": payment}


@router.get("/live-orders")
async def live_orders(
    request: Request,
    current_user: Caller = Depends(require_admin),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Server-sent events announcing new and updated orders."""
    feed = LiveOrderFeed(session_factory=session_factory)
    return StreamingResponse(
        feed.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
