"""VNPay-style bank gateway: redirect URLs, return/IPN checks, query and refund."""
import hmac
import logging
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.conf import settings

from payments import signing
from payments.exceptions import GatewayError
from payments.integrations.base import post_json

logger = logging.getLogger(__name__)

GATEWAY = "bank"
SUCCESS_CODE = "00"

# Field order of the pipe-joined hash on a querydr response.
QUERY_RESPONSE_FIELDS = (
    "vnp_ResponseId",
    "vnp_Command",
    "vnp_ResponseCode",
    "vnp_Message",
    "vnp_TmnCode",
    "vnp_TxnRef",
    "vnp_Amount",
    "vnp_BankCode",
    "vnp_PayDate",
    "vnp_TransactionNo",
    "vnp_TransactionType",
    "vnp_TransactionStatus",
    "vnp_OrderInfo",
    "vnp_PromotionCode",
    "vnp_PromotionAmount",
)


def _config() -> dict:
    return settings.BANK_GATEWAY


def local_time(now: datetime | None = None) -> datetime:
    tz = ZoneInfo(_config().get("TIMEZONE", "Asia/Ho_Chi_Minh"))
    return (now or datetime.now(tz)).astimezone(tz)


def to_minor(amount) -> int:
    return int((Decimal(str(amount)) * 100).to_integral_value())


def from_minor(value) -> Decimal:
    """Undo the gateway's x100 scaling. Raises ValueError on garbage."""
    try:
        return Decimal(int(str(value))) / 100
    except (TypeError, ValueError, ArithmeticError):
        raise ValueError(f"Invalid minor-unit amount: {value!r}")


def create_payment_url(*, amount, ip_addr: str, order_id: str | None = None, order_info: str | None = None,
                       bank_code: str | None = None, locale: str = "vn", return_url: str | None = None,
                       now: datetime | None = None) -> str:
    cfg = _config()
    if Decimal(str(amount)) <= 0:
        raise GatewayError("bank: invalid payment amount")
    local = local_time(now)
    order_id = order_id or local.strftime("%d%H%M%S")
    params = {
        "vnp_Version": cfg.get("VERSION", "2.1.0"),
        "vnp_Command": "pay",
        "vnp_TmnCode": cfg["TMN_CODE"],
        "vnp_Locale": locale or "vn",
        "vnp_CurrCode": cfg.get("CURRENCY", "VND"),
        "vnp_TxnRef": order_id,
        "vnp_OrderInfo": order_info or f"Thanh toan cho ma GD:{order_id}",
        "vnp_OrderType": "other",
        "vnp_Amount": to_minor(amount),
        "vnp_ReturnUrl": return_url or cfg["RETURN_URL"],
        "vnp_IpAddr": ip_addr,
        "vnp_CreateDate": local.strftime("%Y%m%d%H%M%S"),
    }
    if bank_code:
        params["vnp_BankCode"] = bank_code

    query = signing.bank_canonical(params)
    secure_hash = signing.sign_bank(params, cfg["HASH_SECRET"])
    return f"{cfg['PAY_URL']}?{query}&vnp_SecureHash={secure_hash}"


def verify(params: dict) -> bool:
    return signing.verify_bank(params, _config()["HASH_SECRET"])


def sign(params: dict) -> str:
    return signing.sign_bank(params, _config()["HASH_SECRET"])


def query_transaction(order_id: str, transaction_date: str, *, ip_addr: str = "127.0.0.1",
                      now: datetime | None = None) -> dict:
    """Ask the gateway for the current state of ``order_id``.

    ``transaction_date`` is the original ``vnp_CreateDate`` (yyyyMMddHHmmss).
    Returns the gateway's raw JSON response.
    """
    cfg = _config()
    local = local_time(now)
    body = {
        "vnp_RequestId": local.strftime("%H%M%S%f"),
        "vnp_Version": cfg.get("VERSION", "2.1.0"),
        "vnp_Command": "querydr",
        "vnp_TmnCode": cfg["TMN_CODE"],
        "vnp_TxnRef": order_id,
        "vnp_OrderInfo": f"Truy van GD ma:{order_id}",
        "vnp_TransactionDate": transaction_date,
        "vnp_CreateDate": local.strftime("%Y%m%d%H%M%S"),
        "vnp_IpAddr": ip_addr,
    }
    body["vnp_SecureHash"] = signing.sign_pipe(
        [
            body["vnp_RequestId"],
            body["vnp_Version"],
            body["vnp_Command"],
            body["vnp_TmnCode"],
            body["vnp_TxnRef"],
            body["vnp_TransactionDate"],
            body["vnp_CreateDate"],
            body["vnp_IpAddr"],
            body["vnp_OrderInfo"],
        ],
        cfg["HASH_SECRET"],
    )
    return post_json(cfg["API_URL"], body, gateway=GATEWAY)


def sign_query_response(data: dict) -> str:
    return signing.sign_pipe([data.get(f) for f in QUERY_RESPONSE_FIELDS], _config()["HASH_SECRET"])


def verify_query_response(data: dict) -> bool:
    received = str(data.get("vnp_SecureHash") or "").strip().lower()
    if not received:
        return False
    return hmac.compare_digest(sign_query_response(data), received)


def refund_transaction(*, order_id: str, transaction_date: str, amount, transaction_type: str, user: str,
                       transaction_no: str = "0", ip_addr: str = "127.0.0.1", now: datetime | None = None) -> dict:
    """Request a refund. ``transaction_type`` is ``02`` (full) or ``03`` (partial)."""
    if transaction_type not in ("02", "03"):
        raise GatewayError("bank: transaction_type must be 02 or 03")
    cfg = _config()
    local = local_time(now)
    body = {
        "vnp_RequestId": local.strftime("%H%M%S%f"),
        "vnp_Version": cfg.get("VERSION", "2.1.0"),
        "vnp_Command": "refund",
        "vnp_TmnCode": cfg["TMN_CODE"],
        "vnp_TransactionType": transaction_type,
        "vnp_TxnRef": order_id,
        "vnp_Amount": to_minor(amount),
        "vnp_TransactionNo": transaction_no or "0",
        "vnp_TransactionDate": transaction_date,
        "vnp_CreateBy": user,
        "vnp_CreateDate": local.strftime("%Y%m%d%H%M%S"),
        "vnp_IpAddr": ip_addr,
        "vnp_OrderInfo": f"Hoan tien GD ma:{order_id}",
    }
    body["vnp_SecureHash"] = signing.sign_pipe(
        [
            body["vnp_RequestId"],
            body["vnp_Version"],
            body["vnp_Command"],
            body["vnp_TmnCode"],
            body["vnp_TransactionType"],
            body["vnp_TxnRef"],
            body["vnp_Amount"],
            body["vnp_TransactionNo"],
            body["vnp_TransactionDate"],
            body["vnp_CreateBy"],
            body["vnp_CreateDate"],
            body["vnp_IpAddr"],
            body["vnp_OrderInfo"],
        ],
        cfg["HASH_SECRET"],
    )
    logger.info("Requesting bank refund for %s (%s) by %s", order_id, transaction_type, user)
    return post_json(cfg["API_URL"], body, gateway=GATEWAY)
