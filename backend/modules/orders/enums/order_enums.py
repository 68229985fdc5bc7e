from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that count as revenue in dashboards and reports
PAID_STATUSES = (
    OrderStatus.PAID.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.COMPLETED.value,
)


class PaymentMethod(str, Enum):
    UPI = "upi"
    CASH = "cash"
