import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _fail_silently() -> bool:
    return getattr(settings, "EMAIL_FAIL_SILENTLY", True)


def _from_email():
    return getattr(settings, "DEFAULT_FROM_EMAIL", None) or getattr(settings, "EMAIL_HOST_USER", None)


def _send(template: str, subject: str, recipient: str, context: dict) -> None:
    text = render_to_string(f"emails/{template}.txt", context)
    msg = EmailMultiAlternatives(subject, text, _from_email(), [recipient])
    msg.send(fail_silently=_fail_silently())


def send_payment_confirmation(*, order) -> None:
    """Tell the buyer their payment landed and the seller that the item sold.

    Runs after the order commit; delivery problems are logged, never raised.
    """
    context = {
        "order_id": order.order_id,
        "amount": order.amount,
        "payment_method": order.get_payment_method_display(),
        "product_title": order.product.title,
        "shipping_address": order.shipping_address,
        "seller_amount": order.seller_amount,
        "deadline": order.received_successfully_deadline,
    }

    try:
        if order.buyer.email:
            _send("payment_receipt_buyer", f"Payment received: {order.order_id}", order.buyer.email, context)
    except Exception:
        logger.exception("Failed to send payment receipt to buyer for %s", order.order_id)

    try:
        if order.seller.email:
            _send("item_sold_seller", f"Your item sold: {order.product.title}", order.seller.email, context)
    except Exception:
        logger.exception("Failed to send sale notification to seller for %s", order.order_id)
