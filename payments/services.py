import logging

from django.core.paginator import Paginator
from django.db.models import Count, Q, Sum

from catalog.models import Product

from . import clock as clocks
from . import ledger
from .exceptions import AuthorizationError, GatewayError, NotFoundError
from .integrations import bank, wallet
from .lifecycle import within_window, window_closes_at
from .models import Order
from .notes import Cancellation, PurchaseNote, encode_extra_data, find_note

logger = logging.getLogger(__name__)


def _product(product_id) -> Product:
    try:
        return Product.objects.get(pk=product_id)
    except Product.DoesNotExist:
        raise NotFoundError(f"Product {product_id} not found")


def start_wallet_payment(*, buyer, product_id, clock=None) -> Order:
    """Open a wallet order and ask the gateway for a pay URL.

    A gateway failure marks the order failed before the error is re-raised.
    """
    order = ledger.open_order(product=_product(product_id), buyer=buyer, method=Order.METHOD_WALLET, clock=clock)
    note = find_note(order.notes, PurchaseNote)
    try:
        resp = wallet.create_payment(
            order_id=order.order_id,
            request_id=order.request_id,
            amount=order.amount,
            order_info=f"Payment for {order.product.title}",
            extra_data=encode_extra_data(note),
        )
    except GatewayError as e:
        logger.warning("Wallet create failed for %s: %s", order.order_id, e)
        ledger.fail_order(order.order_id, error_code="gateway_error", error_message=str(e), clock=clock)
        raise

    order.pay_url = resp.pay_url
    order.error_code = resp.error_code
    order.error_message = resp.error_message
    order.save(update_fields=["pay_url", "error_code", "error_message", "updated_at"])
    if not resp.ok:
        ledger.fail_order(order.order_id, error_code=resp.error_code, error_message=resp.error_message, clock=clock)
        raise GatewayError(f"wallet: {resp.error_message or 'payment could not be created'} ({resp.error_code})")
    return order


def start_bank_payment(*, buyer, product_id, shipping_address: str, ip_addr: str, bank_code: str = "",
                       locale: str = "vn", clock=None) -> Order:
    order = ledger.open_order(
        product=_product(product_id),
        buyer=buyer,
        method=Order.METHOD_BANK,
        shipping_address=shipping_address,
        clock=clock,
    )
    order.pay_url = bank.create_payment_url(
        amount=order.amount,
        order_id=order.order_id,
        order_info=f"Thanh toan cho san pham: {order.product.title}",
        bank_code=bank_code or None,
        locale=locale or "vn",
        ip_addr=ip_addr,
        now=clocks.resolve(clock).now(),
    )
    order.save(update_fields=["pay_url", "updated_at"])
    return order


def buy_with_cash(*, buyer, product_id, shipping_address: str = "", clock=None) -> Order:
    """Cash purchases settle immediately."""
    order = ledger.open_order(
        product=_product(product_id),
        buyer=buyer,
        method=Order.METHOD_CASH,
        shipping_address=shipping_address,
        clock=clock,
    )
    return ledger.complete_order(order.order_id, clock=clock).order


def _visible_order(order_id: str, user) -> Order:
    order = ledger.get_order(order_id)
    if getattr(user, "is_staff", False):
        return order
    if user.pk not in (order.buyer_id, order.seller_id):
        raise AuthorizationError("You are not a party to this order")
    return order


def order_summary(order: Order) -> dict:
    return {
        "order_id": order.order_id,
        "transaction_id": order.transaction_id,
        "amount": str(order.amount),
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "shipping_address": order.shipping_address,
        "completed_at": order.completed_at,
        "received_successfully": order.received_successfully,
        "received_successfully_deadline": order.received_successfully_deadline,
        "received_confirmed_at": order.received_confirmed_at,
        "created_at": order.created_at,
        "product": {
            "id": order.product_id,
            "title": order.product.title,
            "category": order.product.category,
            "status": order.product.status,
        },
    }


def get_payment_status(order_id: str, *, user) -> dict:
    order = _visible_order(order_id, user)
    data = order_summary(order)
    data["error_code"] = order.error_code
    data["error_message"] = order.error_message
    return data


def purchase_history(*, user, filters: dict) -> dict:
    qs = Order.objects.filter(buyer=user).select_related("product", "seller")

    status = filters.get("status") or Order.STATUS_COMPLETED
    if status != "all":
        qs = qs.filter(payment_status=status)
    if filters.get("category"):
        qs = qs.filter(product__category=filters["category"])
    if filters.get("min_amount") is not None:
        qs = qs.filter(amount__gte=filters["min_amount"])
    if filters.get("max_amount") is not None:
        qs = qs.filter(amount__lte=filters["max_amount"])
    if filters.get("start_date"):
        qs = qs.filter(created_at__gte=filters["start_date"])
    if filters.get("end_date"):
        qs = qs.filter(created_at__lte=filters["end_date"])

    sort_field = filters.get("sort_by") or "created_at"
    prefix = "" if filters.get("sort_order") == "asc" else "-"
    qs = qs.order_by(f"{prefix}{sort_field}", f"{prefix}pk")

    stats = qs.aggregate(
        total_purchases=Count("pk"),
        total_spent=Sum("amount"),
        awaiting_receipt=Count("pk", filter=Q(payment_status=Order.STATUS_COMPLETED, received_successfully=False)),
    )
    paginator = Paginator(qs, filters.get("limit") or 10)
    page = paginator.get_page(filters.get("page") or 1)
    return {
        "purchases": [order_summary(o) for o in page.object_list],
        "pagination": {
            "page": page.number,
            "limit": paginator.per_page,
            "total": paginator.count,
            "pages": paginator.num_pages,
            "has_next": page.has_next(),
            "has_prev": page.has_previous(),
        },
        "statistics": {
            "total_purchases": stats["total_purchases"] or 0,
            "total_spent": str(stats["total_spent"] or 0),
            "awaiting_receipt": stats["awaiting_receipt"] or 0,
        },
    }


def _timeline(order: Order) -> list[dict]:
    events = [{"event": "order_created", "at": order.created_at}]
    cancellation = find_note(order.notes, Cancellation)
    if order.completed_at:
        events.append({"event": "payment_completed", "at": order.completed_at})
    if cancellation:
        events.append({"event": "cancelled", "at": cancellation.at, "reason": cancellation.reason})
    elif order.payment_status == Order.STATUS_FAILED:
        events.append({"event": "payment_failed", "at": order.updated_at, "code": order.error_code})
    if order.received_confirmed_at:
        events.append({"event": "receipt_confirmed", "at": order.received_confirmed_at})
    return events


def purchase_details(order_id: str, *, user, clock=None) -> dict:
    order = ledger.get_order(order_id)
    if order.buyer_id != user.pk:
        raise AuthorizationError("Only the buyer can view purchase details")
    data = order_summary(order)
    data.update(
        {
            "seller": {"id": order.seller_id, "username": order.seller.get_username()},
            "error_code": order.error_code,
            "error_message": order.error_message,
            "can_modify": (
                not order.received_successfully
                and order.payment_status != Order.STATUS_FAILED
                and within_window(order, clock=clock)
            ),
            "modify_until": window_closes_at(order),
            "timeline": _timeline(order),
        }
    )
    return data


def query_bank_transaction(*, order_id: str, transaction_date: str, ip_addr: str) -> dict:
    return bank.query_transaction(order_id, transaction_date, ip_addr=ip_addr)


def refund_bank_transaction(*, order_id: str, transaction_date: str, amount, transaction_type: str, user,
                            ip_addr: str) -> dict:
    order = ledger.get_order(order_id)
    return bank.refund_transaction(
        order_id=order.order_id,
        transaction_date=transaction_date,
        amount=amount,
        transaction_type=transaction_type,
        user=user.get_username(),
        transaction_no=order.transaction_id or "0",
        ip_addr=ip_addr,
    )
