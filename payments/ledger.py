"""Order state machine.

Every status change is an atomic conditional UPDATE that only matches rows
still in the expected state, so two concurrent writers (duplicate IPNs, a
return redirect racing its IPN) cannot both apply a transition.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q

from catalog.models import Product

from . import clock as clocks
from .emails import send_payment_confirmation
from .exceptions import NotFoundError, StateConflictError, ValidationError
from .models import Order, ReconciliationIssue
from .notes import PurchaseNote

logger = logging.getLogger(__name__)

ORDER_ID_PREFIX = {
    Order.METHOD_WALLET: "MOMO",
    Order.METHOD_BANK: "VNP",
    Order.METHOD_CASH: "CASH",
}


@dataclass
class TransitionResult:
    order: Order
    applied: bool
    reason: str = ""

    @property
    def already_processed(self) -> bool:
        return not self.applied


def receipt_deadline_days() -> int:
    return int(settings.PAYMENTS.get("RECEIPT_DEADLINE_DAYS", 7))


def generate_order_id(method: str, *, clock=None) -> str:
    now = clocks.resolve(clock).now()
    return f"{ORDER_ID_PREFIX[method]}{now.strftime('%y%m%d%H%M%S')}{secrets.randbelow(10_000):04d}"


def get_order(order_id: str) -> Order:
    try:
        return Order.objects.select_related("product", "buyer", "seller").get(order_id=order_id)
    except Order.DoesNotExist:
        raise NotFoundError(f"Order {order_id} not found")


def _check_purchasable(product: Product, buyer) -> None:
    if not product.is_available:
        raise StateConflictError("Product is not available for purchase", reason="product_unavailable")
    if product.seller_id == buyer.pk:
        raise ValidationError("You cannot buy your own product", fields={"product": ["own_product"]})
    if product.price is None or product.price <= 0:
        raise ValidationError("Invalid payment amount", fields={"amount": ["must_be_positive"]})


@transaction.atomic
def open_order(*, product: Product, buyer, method: str, shipping_address: str = "", clock=None) -> Order:
    """Create a ``pending`` ledger entry for ``buyer`` purchasing ``product``.

    The commission rate in force now is frozen on the order.
    """
    if method not in ORDER_ID_PREFIX:
        raise ValidationError("Unsupported payment method", fields={"payment_method": ["invalid_choice"]})
    product = Product.objects.select_for_update().get(pk=product.pk)
    _check_purchasable(product, buyer)
    shipping_address = (shipping_address or "").strip()
    if method == Order.METHOD_BANK and not shipping_address:
        raise ValidationError("Shipping address is required", fields={"shipping_address": ["required"]})
    if method == Order.METHOD_WALLET and product.price != product.price.to_integral_value():
        raise ValidationError(
            "Wallet payments need a whole-unit amount", fields={"amount": ["fractional_not_supported"]}
        )

    order_id = generate_order_id(method, clock=clock)
    order = Order(
        order_id=order_id,
        request_id=order_id,
        amount=product.price,
        product=product,
        buyer=buyer,
        seller_id=product.seller_id,
        payment_method=method,
        shipping_address=shipping_address or ("Not provided" if method == Order.METHOD_CASH else ""),
    )
    order.add_note(PurchaseNote(product=str(product.pk), buyer=str(buyer.pk), seller=str(product.seller_id)))
    order.save()
    logger.info("Opened %s order %s for product %s (amount=%s)", method, order.order_id, product.pk, order.amount)
    return order


def complete_order(order_id: str, *, transaction_id: str = "", clock=None) -> TransitionResult:
    """pending -> completed. The only path that marks money as received."""
    now = clocks.resolve(clock).now()
    with transaction.atomic():
        claimed = Order.objects.filter(order_id=order_id, payment_status=Order.STATUS_PENDING).update(
            payment_status=Order.STATUS_COMPLETED,
            transaction_id=transaction_id or "",
            completed_at=now,
            received_successfully_deadline=now + timedelta(days=receipt_deadline_days()),
            updated_at=now,
        )
        order = get_order(order_id)
        if not claimed:
            logger.info("Order %s already processed (status=%s)", order_id, order.payment_status)
            return TransitionResult(order=order, applied=False, reason="already_processed")
        order.refresh_commission()
        order.save(update_fields=["admin_commission", "seller_amount"])
        transaction.on_commit(lambda: send_payment_confirmation(order=order))

    logger.info("Order %s completed (txn=%s)", order_id, transaction_id)
    mark_product_sold(order)
    return TransitionResult(order=order, applied=True)


def fail_order(order_id: str, *, error_code: str = "", error_message: str = "", clock=None) -> TransitionResult:
    """pending -> failed. Records the gateway's error and nothing else."""
    now = clocks.resolve(clock).now()
    with transaction.atomic():
        claimed = Order.objects.filter(order_id=order_id, payment_status=Order.STATUS_PENDING).update(
            payment_status=Order.STATUS_FAILED,
            error_code=str(error_code or "")[:32],
            error_message=error_message or "",
            updated_at=now,
        )
        order = get_order(order_id)
    if not claimed:
        logger.info("Order %s already processed (status=%s)", order_id, order.payment_status)
        return TransitionResult(order=order, applied=False, reason="already_processed")
    logger.info("Order %s failed (code=%s)", order_id, error_code)
    return TransitionResult(order=order, applied=True)


def mark_product_sold(order: Order) -> bool:
    """Second step of the completion saga; failures become reconciliation issues.

    The product is only claimed while it is still available or already held
    by this order's buyer, so a late completion never takes it from someone else.
    """
    try:
        updated = Product.objects.filter(
            Q(status=Product.STATUS_AVAILABLE) | Q(buyer_id=order.buyer_id), pk=order.product_id
        ).update(status=Product.STATUS_SOLD, buyer_id=order.buyer_id)
        if updated:
            return True
        detail = f"product {order.product_id} missing or held by another buyer"
    except Exception as e:
        logger.exception("Marking product %s sold for order %s failed", order.product_id, order.order_id)
        detail = f"{type(e).__name__}: {e}"

    logger.error("Reconciliation needed: order %s completed but product not sold (%s)", order.order_id, detail)
    try:
        ReconciliationIssue.objects.create(order=order, kind=ReconciliationIssue.KIND_PRODUCT_SOLD, detail=detail)
    except Exception:
        logger.exception("Could not record reconciliation issue for order %s", order.order_id)
    return False
