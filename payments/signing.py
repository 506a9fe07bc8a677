"""Request signing and verification for both gateways.

Wallet (MoMo style): ``key=value&...`` over a documented, fixed field order,
HMAC-SHA256, hex digest in the ``signature`` field.

Bank (VNPay style): every parameter except the hash fields, sorted by key,
values encoded like JavaScript's ``encodeURIComponent`` with ``%20`` turned
into ``+``, joined with ``&``, HMAC-SHA512, hex digest in ``vnp_SecureHash``.

Bank query/refund calls sign a ``|`` separated list of values instead.
"""
import hashlib
import hmac
from urllib.parse import quote

WALLET_CREATE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "ipnUrl",
    "orderId",
    "orderInfo",
    "partnerCode",
    "redirectUrl",
    "requestId",
    "requestType",
)

WALLET_IPN_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "message",
    "orderId",
    "orderInfo",
    "orderType",
    "partnerCode",
    "payType",
    "requestId",
    "responseTime",
    "resultCode",
    "transId",
)

BANK_HASH_FIELDS = ("vnp_SecureHash", "vnp_SecureHashType")

# Characters encodeURIComponent leaves alone besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def hmac_hex(secret: str, message: str, digestmod=hashlib.sha256) -> str:
    return hmac.new((secret or "").encode("utf-8"), message.encode("utf-8"), digestmod).hexdigest()


def _same(expected: str, received) -> bool:
    return hmac.compare_digest(expected, str(received or "").strip().lower())


def _text(value) -> str:
    return "" if value is None else str(value)


# ---------- Wallet ----------
def wallet_canonical(params: dict, field_order) -> str:
    return "&".join(f"{key}={_text(params.get(key))}" for key in field_order)


def sign_wallet(params: dict, field_order, secret: str) -> str:
    return hmac_hex(secret, wallet_canonical(params, field_order), hashlib.sha256)


def verify_wallet(params: dict, field_order, secret: str, signature=None) -> bool:
    received = params.get("signature") if signature is None else signature
    if not received:
        return False
    return _same(sign_wallet(params, field_order, secret), received)


# ---------- Bank ----------
def encode_component(value) -> str:
    return quote(_text(value), safe=_URI_COMPONENT_SAFE).replace("%20", "+")


def bank_sorted_params(params: dict) -> list[tuple[str, str]]:
    return [
        (key, encode_component(params[key]))
        for key in sorted(params)
        if key not in BANK_HASH_FIELDS
    ]


def bank_canonical(params: dict) -> str:
    return "&".join(f"{key}={value}" for key, value in bank_sorted_params(params))


def sign_bank(params: dict, secret: str) -> str:
    return hmac_hex(secret, bank_canonical(params), hashlib.sha512)


def verify_bank(params: dict, secret: str) -> bool:
    received = params.get("vnp_SecureHash")
    if not received:
        return False
    return _same(sign_bank(params, secret), received)


def sign_pipe(values, secret: str) -> str:
    return hmac_hex(secret, "|".join(_text(v) for v in values), hashlib.sha512)
