# backend/modules/orders/services/payment_service.py

from decimal import Decimal
from io import BytesIO
from urllib.parse import quote, urlencode
import base64

import qrcode

from modules.settings.schemas.settings_schemas import PaymentConfig
from ..schemas.order_schemas import PaymentPayload


def format_amount(amount) -> str:
    return f"{Decimal(amount).quantize(Decimal('0.01'))}"


def build_upi_uri(config: PaymentConfig, amount, invoice_number: str) -> str:
    """UPI deep link understood by Indian payment apps."""
    params = {
        "pa": config.upi_id,
        "pn": config.payee_name,
        "am": format_amount(amount),
        "cu": "INR",
        "tn": f"Order {invoice_number}",
    }
    return "upi://pay?" + urlencode(params, quote_via=quote)


def render_qr_data_url(data: str) -> str:
    """Render ``data`` as a PNG QR code and return it as a data URL."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    img_str = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{img_str}"


def build_payment_payload(config: PaymentConfig, amount, invoice_number: str) -> PaymentPayload:
    upi_uri = build_upi_uri(config, amount, invoice_number)
    return PaymentPayload(
        upi_uri=upi_uri,
        qr_code=render_qr_data_url(upi_uri),
        upi_id=config.upi_id,
        payee_name=config.payee_name,
        amount=float(amount),
    )
