# backend/modules/analytics/services/dashboard_service.py

"""
Admin dashboard figures.

Revenue only counts orders that have been paid (Paid, Preparing, Ready or
Completed). Day boundaries and peak hours follow the business timezone.
"""

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from core.business_time import business_today, day_bounds_utc, to_business_time
from core.config import settings
from modules.auth.models.user_models import User
from modules.menu.models.menu_models import MenuItem
from modules.orders.enums.order_enums import PAID_STATUSES, OrderStatus
from modules.orders.models.order_models import Order


def _money(value) -> float:
    return float(Decimal(value or 0).quantize(Decimal("0.01")))


class DashboardService:
    """Aggregates for the admin dashboard and analytics pages"""

    def __init__(self, db: Session, low_stock_threshold: Optional[int] = None):
        self.db = db
        self.low_stock_threshold = (
            settings.low_stock_threshold
            if low_stock_threshold is None
            else low_stock_threshold
        )

    def get_dashboard_stats(self) -> Dict[str, Any]:
        start, end = day_bounds_utc(business_today())
        today_paid = self.db.query(Order).filter(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status.in_(PAID_STATUSES),
        )

        today_orders = today_paid.count()
        today_revenue = today_paid.with_entities(
            func.coalesce(func.sum(Order.total_amount), 0)
        ).scalar()
        pending_count = (
            self.db.query(Order)
            .filter(Order.status == OrderStatus.PENDING.value)
            .count()
        )
        low_stock_items = (
            self.db.query(MenuItem)
            .filter(
                MenuItem.unlimited_stock == False,  # noqa: E712
                MenuItem.stock < self.low_stock_threshold,
            )
            .count()
        )
        recent_orders = (
            self.db.query(Order)
            .options(selectinload(Order.order_items), selectinload(Order.user))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(5)
            .all()
        )

        return {
            "today_orders": today_orders,
            "today_revenue": _money(today_revenue),
            "pending_count": pending_count,
            "low_stock_items": low_stock_items,
            "recent_orders": recent_orders,
        }

    def _paid_orders(self) -> List[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.order_items))
            .filter(Order.status.in_(PAID_STATUSES))
            .all()
        )

    def _category_lookup(self, orders: List[Order]) -> Dict[int, Optional[str]]:
        item_ids = {
            line.menu_item_id
            for order in orders
            for line in order.order_items
            if line.menu_item_id is not None
        }
        if not item_ids:
            return {}
        rows = (
            self.db.query(MenuItem.id, MenuItem.category)
            .filter(MenuItem.id.in_(item_ids))
            .all()
        )
        return {row.id: row.category for row in rows}

    def get_analytics(self) -> Dict[str, Any]:
        orders = self._paid_orders()
        categories = self._category_lookup(orders)

        total_orders = len(orders)
        total_revenue = sum((Decimal(o.total_amount) for o in orders), Decimal("0"))
        avg_order_value = total_revenue / total_orders if total_orders else Decimal("0")

        item_sales: Dict[Any, Dict[str, Any]] = {}
        category_sales: Dict[str, Dict[str, Any]] = {}
        hour_counts: Dict[int, int] = defaultdict(int)
        for order in orders:
            hour_counts[to_business_time(order.created_at).hour] += 1
            for line in order.order_items:
                line_revenue = Decimal(line.price_at_time) * line.quantity
                # Lines whose menu item was deleted are grouped by name
                key = line.menu_item_id if line.menu_item_id is not None else line.name
                sales = item_sales.setdefault(
                    key, {"name": line.name, "total_sold": 0, "revenue": Decimal("0")}
                )
                sales["total_sold"] += line.quantity
                sales["revenue"] += line_revenue

                category = categories.get(line.menu_item_id) or "Other"
                cat = category_sales.setdefault(
                    category, {"category": category, "count": 0, "revenue": Decimal("0")}
                )
                cat["count"] += 1
                cat["revenue"] += line_revenue

        top_selling_items = sorted(
            item_sales.values(), key=lambda s: s["revenue"], reverse=True
        )[:10]
        sales_by_category = sorted(
            category_sales.values(), key=lambda s: s["revenue"], reverse=True
        )

        return {
            "total_orders": total_orders,
            "total_revenue": _money(total_revenue),
            "avg_order_value": _money(avg_order_value),
            "top_selling_items": [
                {**s, "revenue": _money(s["revenue"])} for s in top_selling_items
            ],
            "sales_by_category": [
                {**s, "revenue": _money(s["revenue"])} for s in sales_by_category
            ],
            "daily_revenue": self._daily_revenue(orders),
            "customer_stats": self._customer_stats(),
            "orders_by_status": self._orders_by_status(),
            "peak_hours": [
                {"hour": hour, "orders": hour_counts.get(hour, 0)} for hour in range(24)
            ],
        }

    def _daily_revenue(self, orders: List[Order]) -> List[Dict[str, Any]]:
        today = business_today()
        by_day: Dict[str, List[Order]] = defaultdict(list)
        for order in orders:
            by_day[to_business_time(order.created_at).date().isoformat()].append(order)

        daily = []
        for offset in range(6, -1, -1):
            day = (today - timedelta(days=offset)).isoformat()
            day_orders = by_day.get(day, [])
            daily.append(
                {
                    "date": day,
                    "revenue": _money(sum(Decimal(o.total_amount) for o in day_orders)),
                    "orders": len(day_orders),
                }
            )
        return daily

    def _customer_stats(self) -> Dict[str, int]:
        start, _ = day_bounds_utc(business_today())
        customers = self.db.query(User).filter(User.is_admin == False)  # noqa: E712
        with_orders = (
            customers.filter(
                User.id.in_(select(Order.user_id).where(Order.user_id.isnot(None)))
            )
            .count()
        )
        return {
            "total_customers": customers.count(),
            "new_today": customers.filter(User.created_at >= start).count(),
            "customers_with_orders": with_orders,
        }

    def _orders_by_status(self) -> Dict[str, int]:
        rows = (
            self.db.query(Order.status, func.count(Order.id))
            .group_by(Order.status)
            .all()
        )
        return {status: count for status, count in rows}
