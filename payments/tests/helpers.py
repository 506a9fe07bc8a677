from datetime import datetime, timezone
from decimal import Decimal

from django.contrib.auth import get_user_model

from catalog.models import Product
from payments import ledger
from payments.clock import FixedClock
from payments.integrations import bank, wallet
from payments.models import Order

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_user(username, **extra):
    return get_user_model().objects.create_user(
        username=username, email=f"{username}@example.com", password="pw", **extra
    )


def make_product(seller, price="100000", **extra):
    return Product.objects.create(title=extra.pop("title", "Desk lamp"), price=Decimal(price), seller=seller, **extra)


def open_order(product, buyer, method=Order.METHOD_WALLET, created_at=T0, **extra):
    """Open an order and pin its creation time."""
    if method == Order.METHOD_BANK:
        extra.setdefault("shipping_address", "12 Nguyen Hue, District 1")
    order = ledger.open_order(product=product, buyer=buyer, method=method, clock=FixedClock(created_at), **extra)
    Order.objects.filter(pk=order.pk).update(created_at=created_at)
    order.refresh_from_db()
    return order


def wallet_ipn(order, result_code=0, amount=None, **overrides):
    payload = {
        "partnerCode": "MOMOTEST",
        "orderId": order.order_id,
        "requestId": order.request_id,
        "amount": str(int(order.amount)) if amount is None else amount,
        "orderInfo": f"Payment for {order.product.title}",
        "orderType": "momo_wallet",
        "transId": "2900000001",
        "resultCode": result_code,
        "message": "Successful." if result_code == 0 else "Transaction denied by user.",
        "payType": "qr",
        "responseTime": "1709283600000",
        "extraData": "",
    }
    payload.update(overrides)
    payload["signature"] = wallet.sign_ipn(payload)
    return payload


def bank_params(order_id, amount, response_code="00", transaction_status="00", **overrides):
    params = {
        "vnp_TmnCode": "TESTTMN1",
        "vnp_TxnRef": order_id,
        "vnp_Amount": str(bank.to_minor(amount)),
        "vnp_OrderInfo": f"Thanh toan cho ma GD:{order_id}",
        "vnp_BankCode": "NCB",
        "vnp_PayDate": "20240301160500",
        "vnp_ResponseCode": response_code,
        "vnp_TransactionStatus": transaction_status,
        "vnp_TransactionNo": "14012345",
    }
    params.update(overrides)
    params["vnp_SecureHash"] = bank.sign(params)
    return params
