# backend/modules/orders/services/live_feed_service.py

"""
Server-sent event feed of new and updated orders for the admin screen.

Each connection keeps only a watermark (the newest ``created_at`` already
reported) and polls the database on a fixed interval. Nothing is persisted
and nothing is replayed from before the connection was opened.
"""

from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple
import asyncio
import json
import logging

from sqlalchemy.orm import Session, selectinload

from core.config import settings
from core.database_utils import get_db_context
from core.mixins import utcnow
from ..models.order_models import Order
from ..schemas.order_schemas import OrderOut

logger = logging.getLogger(__name__)


def format_event(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def order_event(event_type: str, order: Order) -> Dict[str, Any]:
    return {
        "type": event_type,
        "order": OrderOut.model_validate(order).model_dump(mode="json"),
    }


class LiveOrderFeed:
    """Polls for order changes and renders them as SSE frames"""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        poll_seconds: Optional[float] = None,
        update_window_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.poll_seconds = (
            settings.live_feed_poll_seconds if poll_seconds is None else poll_seconds
        )
        self.update_window = timedelta(
            seconds=settings.live_feed_update_window_seconds
            if update_window_seconds is None
            else update_window_seconds
        )

    def poll_once(
        self, db: Session, watermark: datetime, now: Optional[datetime] = None
    ) -> Tuple[List[Dict[str, Any]], datetime]:
        """
        Collect events since ``watermark``.

        Returns the events and the advanced watermark. Orders created after
        the watermark are reported as ``new_order``; orders created before
        the update window but modified inside it as ``order_update``.
        """
        now = now or utcnow()
        window_start = now - self.update_window
        events: List[Dict[str, Any]] = []

        new_orders = (
            db.query(Order)
            .options(selectinload(Order.order_items), selectinload(Order.user))
            .filter(Order.created_at > watermark)
            .order_by(Order.created_at.asc(), Order.id.asc())
            .all()
        )
        for order in new_orders:
            events.append(order_event("new_order", order))
            watermark = order.created_at

        updated_orders = (
            db.query(Order)
            .options(selectinload(Order.order_items), selectinload(Order.user))
            .filter(
                Order.updated_at >= window_start,
                Order.created_at < window_start,
            )
            .order_by(Order.updated_at.asc(), Order.id.asc())
            .all()
        )
        for order in updated_orders:
            events.append(order_event("order_update", order))

        return events, watermark

    async def stream(
        self,
        is_disconnected: Callable[[], Any],
        watermark: Optional[datetime] = None,
    ) -> AsyncIterator[str]:
        """Yield SSE frames until the client goes away."""
        watermark = watermark or utcnow()
        yield format_event({"type": "connected", "message": "Live orders connected"})

        while True:
            if await is_disconnected():
                logger.info("Live orders client disconnected")
                break
            try:
                async with get_db_context(self.session_factory) as db:
                    # Blocking queries run in a worker thread
                    events, watermark = await asyncio.to_thread(
                        self.poll_once, db, watermark
                    )
                for event in events:
                    yield format_event(event)
            except Exception as e:
                # A failed poll must not kill the stream
                logger.error(f"Live orders poll failed: {e}", exc_info=True)
            await asyncio.sleep(self.poll_seconds)
