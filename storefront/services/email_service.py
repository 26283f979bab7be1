"""
Email service for order notifications.
Uses Flask-Mail; sending is skipped when mail is not configured.
"""
import logging
from flask import current_app
from flask_mail import Mail, Message
from storefront.utils.formatters import format_inr, format_date_in

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """Mail is only sent when a server and credentials are configured."""
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def _items_table(order) -> str:
    rows = "".join(
        f"""
            <tr>
                <td>{item.title}</td>
                <td align="center">{item.quantity}</td>
                <td align="right">{format_inr(item.line_total)}</td>
            </tr>"""
        for item in order.items
    )
    return f"""
        <table width="100%" cellpadding="6" style="border-collapse: collapse;">
            <tr style="background: #f3f4f6;">
                <th align="left">Item</th><th>Qty</th><th align="right">Amount</th>
            </tr>{rows}
        </table>"""


def send_order_confirmation(order) -> bool:
    """Send the order confirmation email. Never raises."""
    to_email = order.customer_email
    if not to_email:
        return False

    try:
        if not _mail_enabled():
            logger.info(f"[MAIL DISABLED] Order confirmation skipped for {order.order_number}")
            return True

        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <div style="max-width: 600px; margin: auto; padding: 20px;">
                <h2>Thank you for your order!</h2>
                <p>Order <strong>#{order.order_number}</strong> placed on {format_date_in(order.created_at)}.</p>
                {_items_table(order)}
                <p>Subtotal: {format_inr(order.subtotal)}<br/>
                   Discount: {format_inr(order.discount)}<br/>
                   Shipping: {format_inr(order.shipping_cost)}<br/>
                   <strong>Total: {format_inr(order.total)}</strong><br/>
                   <small>Includes GST of {format_inr(order.tax)}</small></p>
            </div>
        </body>
        </html>
        """
        text_body = (
            f"Thank you for your order #{order.order_number}.\n"
            f"Total: {format_inr(order.total)} (includes GST of {format_inr(order.tax)})."
        )

        msg = Message(
            subject=f"Order Confirmation - #{order.order_number}",
            recipients=[to_email],
            body=text_body,
            html=html_body,
        )
        mail.send(msg)
        logger.info(f"[EMAIL] Order confirmation sent to {to_email}")
        return True

    except Exception as e:
        logger.exception(f"[EMAIL] Failed to send order confirmation for {order.order_number}: {e}")
        return False


def send_order_status_update(order) -> bool:
    """Notify the customer about a status change. Never raises."""
    to_email = order.customer_email
    if not to_email:
        return False

    try:
        if not _mail_enabled():
            logger.info(f"[MAIL DISABLED] Status update skipped for {order.order_number}")
            return True

        if order.status == 'shipped':
            subject = f"Your Order Has Shipped! - #{order.order_number}"
        else:
            subject = f"Order Update - #{order.order_number}"
        body = f"Your order #{order.order_number} is now {order.status}."
        if order.tracking_number:
            body += f"\nTracking number: {order.tracking_number}"

        mail.send(Message(subject=subject, recipients=[to_email], body=body))
        return True

    except Exception:
        logger.exception("Error sending order status email")
        return False
