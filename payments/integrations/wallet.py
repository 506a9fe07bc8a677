"""MoMo-style wallet gateway."""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from payments import signing
from payments.exceptions import GatewayError
from payments.integrations.base import post_json

logger = logging.getLogger(__name__)

GATEWAY = "wallet"


@dataclass
class WalletPaymentResponse:
    order_id: str
    request_id: str
    pay_url: str = ""
    error_code: str = ""
    error_message: str = ""
    raw: dict | None = None

    @property
    def ok(self) -> bool:
        return bool(self.pay_url)


def _config() -> dict:
    return settings.WALLET_GATEWAY


def _amount_str(amount) -> str:
    q = Decimal(str(amount))
    if q <= 0:
        raise GatewayError("wallet: invalid payment amount")
    # The wallet settles in whole currency units.
    if q != q.to_integral_value():
        raise GatewayError(f"wallet: amount {q} is not a whole currency unit")
    return str(int(q))


def sign_ipn(payload: dict) -> str:
    cfg = _config()
    params = {**payload, "accessKey": cfg["ACCESS_KEY"], "partnerCode": cfg["PARTNER_CODE"]}
    return signing.sign_wallet(params, signing.WALLET_IPN_FIELDS, cfg["SECRET_KEY"])


def verify_ipn(payload: dict) -> bool:
    cfg = _config()
    params = {**payload, "accessKey": cfg["ACCESS_KEY"], "partnerCode": cfg["PARTNER_CODE"]}
    return signing.verify_wallet(params, signing.WALLET_IPN_FIELDS, cfg["SECRET_KEY"])


def build_create_request(*, order_id: str, request_id: str, amount, order_info: str, extra_data: str) -> dict:
    cfg = _config()
    body = {
        "partnerCode": cfg["PARTNER_CODE"],
        "accessKey": cfg["ACCESS_KEY"],
        "requestId": request_id,
        "amount": _amount_str(amount),
        "orderId": order_id,
        "orderInfo": order_info,
        "redirectUrl": cfg["REDIRECT_URL"],
        "ipnUrl": cfg["IPN_URL"],
        "extraData": extra_data,
        "requestType": cfg.get("REQUEST_TYPE", "captureWallet"),
    }
    body["signature"] = signing.sign_wallet(body, signing.WALLET_CREATE_FIELDS, cfg["SECRET_KEY"])
    body["lang"] = cfg.get("LANG", "vi")
    return body


def create_payment(*, order_id: str, request_id: str, amount, order_info: str, extra_data: str) -> WalletPaymentResponse:
    """Open a wallet transaction and return its redirect URL or error code.

    Raises :class:`GatewayError` when the gateway is unreachable or answers
    with something that carries neither a ``payUrl`` nor an error code.
    """
    body = build_create_request(
        order_id=order_id,
        request_id=request_id,
        amount=amount,
        order_info=order_info,
        extra_data=extra_data,
    )
    data = post_json(_config()["ENDPOINT"], body, gateway=GATEWAY)

    pay_url = str(data.get("payUrl") or "")
    error_code = data.get("errorCode", data.get("resultCode"))
    if not pay_url and error_code is None:
        logger.error("wallet create response for %s has no payUrl or error code: %s", order_id, data)
        raise GatewayError("wallet: response carries neither payUrl nor errorCode")
    if pay_url and str(error_code or "0") == "0":
        error_code = ""
    return WalletPaymentResponse(
        order_id=order_id,
        request_id=request_id,
        pay_url=pay_url,
        error_code="" if error_code is None else str(error_code),
        error_message=str(data.get("errorMessage") or data.get("message") or ""),
        raw=data,
    )
