# backend/modules/orders/services/invoice_service.py

"""
Sequential invoice numbers of the form ``CAN-YYYYMMDD-NNNN``.

The sequence restarts every business day (in the configured business
timezone). Each number comes from an atomic increment of that day's row in
``invoice_counters`` so two checkouts can never be handed the same value.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.business_time import business_now
from core.config import settings
from ..models.order_models import InvoiceCounter


def business_day_key(now: Optional[datetime] = None) -> str:
    return (now or business_now()).strftime("%Y%m%d")


def format_invoice_number(day_key: str, sequence: int, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.invoice_prefix}-{day_key}-{sequence:04d}"


def next_invoice_number(db: Session, now: Optional[datetime] = None) -> str:
    """
    Allocate the next invoice number for the current business day.

    Must run inside the caller's transaction so the counter bump commits or
    rolls back together with the order. A concurrent first-of-day insert
    surfaces as an ``IntegrityError`` on flush; callers retry the whole
    transaction.
    """
    day_key = business_day_key(now)

    bumped = (
        db.query(InvoiceCounter)
        .filter(InvoiceCounter.day == day_key)
        .update(
            {InvoiceCounter.last_value: InvoiceCounter.last_value + 1},
            synchronize_session=False,
        )
    )
    if bumped == 0:
        db.add(InvoiceCounter(day=day_key, last_value=1))
        db.flush()
        sequence = 1
    else:
        sequence = (
            db.query(InvoiceCounter.last_value)
            .filter(InvoiceCounter.day == day_key)
            .scalar()
        )

    return format_invoice_number(day_key, sequence)
