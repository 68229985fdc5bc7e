# backend/modules/reporting/services/report_service.py

"""
Daily sales report emailed to the canteen owner.

Covers the previous business day in the business timezone and ignores
cancelled orders.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from jinja2 import Template
from sqlalchemy.orm import Session, selectinload

from core.business_time import business_today, day_bounds_utc
from modules.orders.enums.order_enums import OrderStatus
from modules.orders.models.order_models import Order
from modules.settings.schemas.settings_schemas import ReportMailConfig
from .mailer import SmtpMailer

logger = logging.getLogger(__name__)


DAILY_REPORT_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Daily Sales Report</title>
</head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #f97316;">Daily Sales Report</h1>
    <p>{{ business_name }}</p>
    <p style="color: #999;">{{ report.date_label }}</p>

    <table style="width: 100%; border-collapse: collapse;">
        <tr><td>Total Revenue</td><td style="text-align: right;"><strong>Rs.{{ "%.2f"|format(report.total_revenue) }}</strong></td></tr>
        <tr><td>Total Orders</td><td style="text-align: right;">{{ report.total_orders }}</td></tr>
        <tr><td>Walk-in Orders</td><td style="text-align: right;">{{ report.walk_in_orders }}</td></tr>
        <tr><td>Online Orders</td><td style="text-align: right;">{{ report.online_orders }}</td></tr>
        <tr><td>Completed</td><td style="text-align: right;">{{ report.completed_orders }}</td></tr>
        <tr><td>Pending</td><td style="text-align: right;">{{ report.pending_orders }}</td></tr>
        <tr><td>Average Order Value</td><td style="text-align: right;">Rs.{{ "%.2f"|format(report.avg_order_value) }}</td></tr>
    </table>

    <h3>Top Selling Items</h3>
    {% if report.top_items %}
    <table style="width: 100%; border-collapse: collapse;">
        <tr><th style="text-align: left;">Item</th><th>Qty</th><th style="text-align: right;">Revenue</th></tr>
        {% for item in report.top_items %}
        <tr>
            <td>{{ loop.index }}. {{ item.name }}</td>
            <td style="text-align: center;">{{ item.quantity }}</td>
            <td style="text-align: right;">Rs.{{ "%.2f"|format(item.revenue) }}</td>
        </tr>
        {% endfor %}
    </table>
    {% else %}
    <p style="color: #999;">No sales recorded</p>
    {% endif %}

    <p style="color: #666; font-size: 12px;">Automated report from {{ business_name }} admin.</p>
</body>
</html>
"""

DAILY_REPORT_TEXT_TEMPLATE = """
{{ business_name }} - Daily Sales Report
{{ report.date_label }}

Total revenue:       Rs.{{ "%.2f"|format(report.total_revenue) }}
Total orders:        {{ report.total_orders }}
Walk-in / online:    {{ report.walk_in_orders }} / {{ report.online_orders }}
Completed / pending: {{ report.completed_orders }} / {{ report.pending_orders }}
Average order value: Rs.{{ "%.2f"|format(report.avg_order_value) }}

Top selling items:
{% for item in report.top_items %}
{{ loop.index }}. {{ item.name }} x{{ item.quantity }} (Rs.{{ "%.2f"|format(item.revenue) }})
{% else %}
No sales recorded
{% endfor %}
"""

TEST_EMAIL_HTML_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2 style="color: #f97316;">Email Configuration Successful!</h2>
    <p>This is a test email from <strong>{{ business_name }}</strong>.</p>
    <p>Daily sales reports will be sent to this address every day at midnight ({{ timezone }}).</p>
</div>
"""


class DailyReportService:
    """Builds and sends the previous day's sales summary"""

    def __init__(self, db: Session):
        self.db = db

    def build_daily_report(self, day: Optional[date] = None) -> Dict[str, Any]:
        day = day or (business_today() - timedelta(days=1))
        start, end = day_bounds_utc(day)

        orders = (
            self.db.query(Order)
            .options(selectinload(Order.order_items))
            .filter(
                Order.created_at >= start,
                Order.created_at < end,
                Order.status != OrderStatus.CANCELLED.value,
            )
            .all()
        )

        total_orders = len(orders)
        total_revenue = sum((Decimal(o.total_amount) for o in orders), Decimal("0"))
        walk_in_orders = sum(1 for o in orders if o.is_walk_in)

        item_sales: Dict[Any, Dict[str, Any]] = {}
        for order in orders:
            for line in order.order_items:
                key = line.menu_item_id if line.menu_item_id is not None else line.name
                sales = item_sales.setdefault(
                    key, {"name": line.name, "quantity": 0, "revenue": Decimal("0")}
                )
                sales["quantity"] += line.quantity
                sales["revenue"] += Decimal(line.price_at_time) * line.quantity

        top_items = sorted(item_sales.values(), key=lambda s: s["quantity"], reverse=True)[:5]

        return {
            "date": day.isoformat(),
            "date_label": day.strftime("%A, %d %B %Y"),
            "total_orders": total_orders,
            "total_revenue": float(total_revenue),
            "walk_in_orders": walk_in_orders,
            "online_orders": total_orders - walk_in_orders,
            "completed_orders": sum(
                1 for o in orders if o.status == OrderStatus.COMPLETED.value
            ),
            "pending_orders": sum(
                1 for o in orders if o.status == OrderStatus.PENDING.value
            ),
            "avg_order_value": float(total_revenue / total_orders) if total_orders else 0.0,
            "top_items": [
                {**item, "revenue": float(item["revenue"])} for item in top_items
            ],
        }

    def render_report(self, report: Dict[str, Any], business_name: str) -> Dict[str, str]:
        context = {"report": report, "business_name": business_name}
        return {
            "html": Template(DAILY_REPORT_HTML_TEMPLATE).render(**context),
            "text": Template(DAILY_REPORT_TEXT_TEMPLATE, trim_blocks=True).render(**context),
        }

    def send_daily_report(
        self, mail_config: ReportMailConfig, day: Optional[date] = None
    ) -> Dict[str, Any]:
        mailer = SmtpMailer(mail_config)
        report = self.build_daily_report(day)
        rendered = self.render_report(report, mail_config.business_name)
        mailer.send(
            subject=f"Daily Sales Report - {report['date_label']}",
            html_content=rendered["html"],
            text_content=rendered["text"],
        )
        logger.info(
            f"Daily report for {report['date']} sent to {mail_config.report_email} "
            f"({report['total_orders']} orders)"
        )
        return report

    def send_test_email(self, mail_config: ReportMailConfig, timezone: str) -> None:
        mailer = SmtpMailer(mail_config)
        html = Template(TEST_EMAIL_HTML_TEMPLATE).render(
            business_name=mail_config.business_name, timezone=timezone
        )
        mailer.send(subject=f"Test Email - {mail_config.business_name}", html_content=html)
