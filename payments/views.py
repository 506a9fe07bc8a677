import functools
import json
import logging

from django.conf import settings
from django.http import HttpResponseRedirect, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from . import lifecycle, services, webhooks
from .exceptions import AuthorizationError, PaymentError, ValidationError
from .forms import BankQueryForm, BankRefundForm, CreatePaymentForm, PurchaseHistoryForm, cleaned_or_raise

logger = logging.getLogger(__name__)


def _json_body(request):
    try:
        return json.loads(request.body.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None


def _client_ip(request) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or "127.0.0.1"


def api_view(view):
    """Session-authenticated JSON endpoint; PaymentError becomes a JSON error body."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"ok": False, "error": "unauthenticated"}, status=401)
        try:
            return view(request, *args, **kwargs)
        except PaymentError as e:
            if e.status_code >= 500:
                logger.error("%s failed: %s", view.__name__, e)
            return JsonResponse(e.as_dict(), status=e.status_code)

    return wrapper


def _body_or_raise(request) -> dict:
    body = _json_body(request)
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    return body


def _created(order) -> JsonResponse:
    return JsonResponse(
        {
            "ok": True,
            "order_id": order.order_id,
            "pay_url": order.pay_url,
            "payment_status": order.payment_status,
            "product": {"id": order.product_id, "title": order.product.title, "price": str(order.product.price)},
        }
    )


# ---------- Checkout ----------
@csrf_exempt
@require_POST
@api_view
def wallet_create_view(request):
    data = cleaned_or_raise(CreatePaymentForm(_body_or_raise(request)))
    order = services.start_wallet_payment(buyer=request.user, product_id=data["product_id"])
    return _created(order)


@csrf_exempt
@require_POST
@api_view
def bank_create_view(request):
    data = cleaned_or_raise(CreatePaymentForm(_body_or_raise(request)))
    order = services.start_bank_payment(
        buyer=request.user,
        product_id=data["product_id"],
        shipping_address=data.get("shipping_address") or "",
        bank_code=data.get("bank_code") or "",
        locale=data.get("locale") or "vn",
        ip_addr=_client_ip(request),
    )
    return _created(order)


@csrf_exempt
@require_POST
@api_view
def cash_create_view(request):
    data = cleaned_or_raise(CreatePaymentForm(_body_or_raise(request)))
    order = services.buy_with_cash(
        buyer=request.user,
        product_id=data["product_id"],
        shipping_address=data.get("shipping_address") or "",
    )
    return _created(order)


# ---------- Gateway callbacks (unauthenticated, signature checked) ----------
@csrf_exempt
@require_POST
def wallet_ipn_view(request):
    ack = webhooks.process_wallet_ipn(_json_body(request) or {})
    return JsonResponse(ack.body, status=ack.status_code)


@require_GET
def bank_ipn_view(request):
    ack = webhooks.process_bank_ipn(request.GET.dict())
    return JsonResponse(ack.body, status=ack.status_code)


@require_GET
def bank_return_view(request):
    params = request.GET.dict()
    ack = webhooks.process_bank_return(params)
    frontend = settings.FRONTEND_URL.rstrip("/")
    order_id = params.get("vnp_TxnRef", "")
    if ack.outcome == webhooks.Outcome.BAD_SIGNATURE:
        return JsonResponse({"ok": False, "error": "invalid_signature"}, status=400)
    if ack.outcome == webhooks.Outcome.NOT_FOUND:
        return JsonResponse({"ok": False, "error": "not_found"}, status=404)
    if ack.order is not None and ack.order.is_completed:
        return HttpResponseRedirect(f"{frontend}/payment/success?orderId={order_id}")
    code = params.get("vnp_ResponseCode", "")
    return HttpResponseRedirect(f"{frontend}/payment/failed?orderId={order_id}&code={code}")


@csrf_exempt
@require_POST
@api_view
def bank_query_view(request):
    if not request.user.is_staff:
        raise AuthorizationError("Gateway queries are restricted to staff")
    data = cleaned_or_raise(BankQueryForm(_body_or_raise(request)))
    result = services.query_bank_transaction(
        order_id=data["order_id"], transaction_date=data["transaction_date"], ip_addr=_client_ip(request)
    )
    return JsonResponse({"ok": True, "result": result})


@csrf_exempt
@require_POST
@api_view
def bank_refund_view(request):
    if not request.user.is_staff:
        raise AuthorizationError("Refunds are restricted to staff")
    data = cleaned_or_raise(BankRefundForm(_body_or_raise(request)))
    result = services.refund_bank_transaction(
        order_id=data["order_id"],
        transaction_date=data["transaction_date"],
        amount=data["amount"],
        transaction_type=data["transaction_type"],
        user=request.user,
        ip_addr=_client_ip(request),
    )
    return JsonResponse({"ok": True, "result": result})


# ---------- Buyer operations ----------
@require_GET
@api_view
def payment_status_view(request, order_id: str):
    return JsonResponse({"ok": True, "payment": services.get_payment_status(order_id, user=request.user)})


@require_GET
@api_view
def purchase_history_view(request):
    filters = cleaned_or_raise(PurchaseHistoryForm(request.GET))
    return JsonResponse({"ok": True, "data": services.purchase_history(user=request.user, filters=filters)})


@require_GET
@api_view
def purchase_details_view(request, order_id: str):
    return JsonResponse({"ok": True, "data": services.purchase_details(order_id, user=request.user)})


@csrf_exempt
@require_POST
@api_view
def cancel_purchase_view(request, order_id: str):
    body = _json_body(request) or {}
    order = lifecycle.cancel_purchase(order_id, user=request.user, reason=str(body.get("reason") or ""))
    return JsonResponse({"ok": True, "order_id": order.order_id, "payment_status": order.payment_status})


@csrf_exempt
@require_POST
@api_view
def update_shipping_address_view(request, order_id: str):
    body = _body_or_raise(request)
    order = lifecycle.update_shipping_address(
        order_id, user=request.user, address=str(body.get("shipping_address") or "")
    )
    return JsonResponse({"ok": True, "order_id": order.order_id, "shipping_address": order.shipping_address})


@csrf_exempt
@require_POST
@api_view
def confirm_receipt_view(request, order_id: str):
    result = lifecycle.confirm_receipt(order_id, user=request.user)
    return JsonResponse(
        {
            "ok": result.confirmed,
            "message": result.message,
            "already_confirmed": result.already_confirmed,
            "data": {
                "order_id": result.order.order_id,
                "received_successfully": result.order.received_successfully,
                "received_confirmed_at": result.order.received_confirmed_at,
            },
        }
    )
