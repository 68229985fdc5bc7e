from typing import Dict, List

from pydantic import BaseModel

from modules.orders.schemas.order_schemas import OrderOut


class DashboardStats(BaseModel):
    today_orders: int
    today_revenue: float
    pending_count: int
    low_stock_items: int
    recent_orders: List[OrderOut]


class ItemSales(BaseModel):
    name: str
    total_sold: int
    revenue: float


class CategorySales(BaseModel):
    category: str
    count: int
    revenue: float


class DailyRevenue(BaseModel):
    date: str
    revenue: float
    orders: int


class CustomerStats(BaseModel):
    total_customers: int
    new_today: int
    customers_with_orders: int


class HourBucket(BaseModel):
    hour: int
    orders: int


class AnalyticsSummary(BaseModel):
    total_orders: int
    total_revenue: float
    avg_order_value: float
    top_selling_items: List[ItemSales]
    sales_by_category: List[CategorySales]
    daily_revenue: List[DailyRevenue]
    customer_stats: CustomerStats
    orders_by_status: Dict[str, int]
    peak_hours: List[HourBucket]


class DashboardStatsResponse(BaseModel):
    success: bool = True
    data: DashboardStats


class AnalyticsResponse(BaseModel):
    success: bool = True
    data: AnalyticsSummary
