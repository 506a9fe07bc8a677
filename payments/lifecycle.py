"""Buyer actions on an existing order, gated by ownership and the edit window."""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction

from catalog.models import Product

from . import clock as clocks
from .exceptions import AuthorizationError, StateConflictError, ValidationError
from .ledger import get_order
from .models import Order
from .notes import Cancellation
from .scheduler import ConfirmationResult, confirm_receipt as confirm_receipt_primitive

logger = logging.getLogger(__name__)


def edit_window() -> timedelta:
    return timedelta(hours=int(settings.PAYMENTS.get("EDIT_WINDOW_HOURS", 6)))


def window_closes_at(order: Order):
    return order.created_at + edit_window()


def within_window(order: Order, *, clock=None) -> bool:
    return clocks.resolve(clock).now() <= window_closes_at(order)


def _owned_order(order_id: str, user) -> Order:
    order = get_order(order_id)
    if order.buyer_id != getattr(user, "pk", None):
        raise AuthorizationError("Only the buyer can do this")
    return order


def _require_open(order: Order, *, clock=None) -> None:
    if order.received_successfully:
        raise StateConflictError("Receipt has already been confirmed", reason="already_received")
    if not within_window(order, clock=clock):
        raise StateConflictError(
            f"Changes are only allowed within {edit_window()} of ordering", reason="window_expired"
        )


def update_shipping_address(order_id: str, *, user, address: str, clock=None) -> Order:
    address = (address or "").strip()
    if not address:
        raise ValidationError("Shipping address is required", fields={"shipping_address": ["required"]})
    order = _owned_order(order_id, user)
    _require_open(order, clock=clock)

    now = clocks.resolve(clock).now()
    updated = Order.objects.filter(pk=order.pk, received_successfully=False).update(
        shipping_address=address, updated_at=now
    )
    if not updated:
        raise StateConflictError("Receipt has already been confirmed", reason="already_received")
    order.refresh_from_db()
    logger.info("Shipping address updated for order %s", order.order_id)
    return order


def cancel_purchase(order_id: str, *, user, reason: str = "", clock=None) -> Order:
    order = _owned_order(order_id, user)
    if order.payment_status == Order.STATUS_FAILED:
        raise StateConflictError("Order is already cancelled or failed", reason="already_failed")
    _require_open(order, clock=clock)

    now = clocks.resolve(clock).now()
    note = Cancellation(actor=str(user.pk), reason=(reason or "").strip() or "Cancelled by buyer", at=now)
    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        locked.add_note(note)
        cancelled = Order.objects.filter(
            pk=order.pk,
            payment_status__in=[Order.STATUS_PENDING, Order.STATUS_COMPLETED],
            received_successfully=False,
        ).update(
            payment_status=Order.STATUS_FAILED,
            error_code="cancelled",
            error_message=note.reason,
            notes=locked.notes,
            updated_at=now,
        )
        if not cancelled:
            raise StateConflictError("Order can no longer be cancelled", reason="state_changed")
        # A product sold to another buyer stays theirs.
        Product.objects.filter(pk=order.product_id, buyer_id=order.buyer_id).update(
            status=Product.STATUS_AVAILABLE, buyer=None
        )

    order.refresh_from_db()
    logger.info("Order %s cancelled by buyer %s: %s", order.order_id, user.pk, note.reason)
    return order


def confirm_receipt(order_id: str, *, user, clock=None) -> ConfirmationResult:
    order = _owned_order(order_id, user)
    if order.payment_status != Order.STATUS_COMPLETED:
        raise StateConflictError("Payment is not completed yet", reason="not_completed")
    return confirm_receipt_primitive(order, clock=clock)
