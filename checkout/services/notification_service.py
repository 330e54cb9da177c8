# checkout/services/notification_service.py
import logging
import smtplib

from checkout.core import email_client
from checkout.schemas.order import OrderWithItemsRead

logger = logging.getLogger(__name__)


def render_order_confirmation(order: OrderWithItemsRead) -> tuple[str, str, str]:
    """
    Build (subject, text_body, html_body) for an order confirmation.
    """
    short_id = str(order.id)[:8]
    subject = f"Your order {short_id} is confirmed"

    text_lines = [
        f"Thank you for your order {order.id}.",
        "",
    ]
    html_rows = []
    for item in order.items:
        name = item.product_name or item.product_id
        text_lines.append(
            f"  {item.quantity} x {name} @ {item.price_at_purchase} = {item.line_total}"
        )
        html_rows.append(
            f"<tr><td>{name}</td><td>{item.quantity}</td>"
            f"<td>{item.price_at_purchase}</td><td>{item.line_total}</td></tr>"
        )
    text_lines += ["", f"Total: {order.total_amount}"]

    html_body = (
        f"<p>Thank you for your order <b>{order.id}</b>.</p>"
        "<table><tr><th>Product</th><th>Qty</th><th>Price</th><th>Total</th></tr>"
        + "".join(html_rows)
        + f"</table><p><b>Total: {order.total_amount}</b></p>"
    )
    return subject, "\n".join(text_lines), html_body


def send_order_confirmation(order: OrderWithItemsRead) -> bool:
    """
    Mail the confirmation to shipping_address.email, if there is one.

    Runs after the order is committed, so a mail failure is logged and
    never reported to the customer. Returns True when a mail was sent.
    """
    to_email = order.shipping_address.get("email")
    if not to_email:
        return False

    if not email_client.is_configured():
        logger.info("SMTP not configured, skipping confirmation for order %s", order.id)
        return False

    subject, text_body, html_body = render_order_confirmation(order)
    try:
        email_client.send_email(to_email, subject, text_body, html_body)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Confirmation mail for order %s failed: %s", order.id, exc)
        return False

    logger.info("Confirmation mail for order %s sent to %s", order.id, to_email)
    return True
