# backend/modules/orders/services/receipt_service.py

from datetime import datetime
from decimal import Decimal

from jinja2 import Environment

from core.business_time import to_business_time
from core.config import settings
from modules.settings.schemas.settings_schemas import CanteenSettings
from ..models.order_models import Order

RECEIPT_WIDTH = 40

RECEIPT_TEMPLATE = """\
{{ business_name | center(width) }}
{% if phone %}{{ ("Ph: " ~ phone) | center(width) }}
{% endif %}
{% if address %}{{ address | center(width) }}
{% endif %}
{{ "-" * width }}
Invoice: {{ invoice_number }}
Date: {{ date }}
{% if customer_name %}Customer: {{ customer_name }}
{% endif %}
{{ "-" * width }}
{% for line in lines %}
{{ line.name | truncate(21, True, "", 0) | left_col(22) }}{{ ("x" ~ line.quantity) | right_col(6) }}{{ line.amount | currency | right_col(12) }}
{% endfor %}
{{ "-" * width }}
{{ "TOTAL" | left_col(28) }}{{ total | currency | right_col(12) }}
Payment: {{ payment_method }}
{{ "-" * width }}
{{ "Thank you! Visit again" | center(width) }}
"""


def _currency(value) -> str:
    return f"Rs.{Decimal(value).quantize(Decimal('0.01'))}"


def _left_col(value, width: int) -> str:
    return str(value).ljust(width)


def _right_col(value, width: int) -> str:
    return str(value).rjust(width)


class ReceiptRenderer:
    """Plain-text till receipt for an order"""

    def __init__(self):
        self.jinja_env = Environment(trim_blocks=True, lstrip_blocks=True)
        self.jinja_env.filters["currency"] = _currency
        self.jinja_env.filters["left_col"] = _left_col
        self.jinja_env.filters["right_col"] = _right_col
        self.template = self.jinja_env.from_string(RECEIPT_TEMPLATE)

    def format_date(self, created_at: datetime) -> str:
        return to_business_time(created_at).strftime("%d %b %Y, %I:%M %p")

    def render(self, order: Order, profile: CanteenSettings) -> str:
        lines = [
            {
                "name": line.name,
                "quantity": line.quantity,
                "amount": line.price_at_time * line.quantity,
            }
            for line in order.order_items
        ]
        return self.template.render(
            width=RECEIPT_WIDTH,
            business_name=profile.business_name or settings.default_business_name,
            phone=profile.phone,
            address=profile.address,
            invoice_number=order.invoice_number,
            date=self.format_date(order.created_at),
            customer_name=order.customer_name,
            lines=lines,
            total=order.total_amount,
            payment_method=(order.payment_method or "upi").upper(),
        )
