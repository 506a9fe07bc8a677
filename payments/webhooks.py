"""Gateway callback processing.

Both gateways go through the same pipeline: verify signature, find the order,
check the amount, check it is still pending, apply the transition. Each step's
outcome maps to that gateway's acknowledgement convention. Nothing in here
raises to the caller; an unexpected error becomes the "unknown error" ack.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from . import ledger
from .exceptions import NotFoundError
from .integrations import bank, wallet
from .models import Order
from .notes import PurchaseNote, decode_extra_data, find_note

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"
    AMOUNT_MISMATCH = "amount_mismatch"
    BAD_SIGNATURE = "bad_signature"
    UNKNOWN_ERROR = "unknown_error"


# Bank family: always HTTP 200, the body drives the gateway's retries.
BANK_ACKS = {
    Outcome.SUCCESS: ("00", "Confirm Success"),
    Outcome.NOT_FOUND: ("01", "Order not found"),
    Outcome.ALREADY_PROCESSED: ("02", "Order already confirmed"),
    Outcome.AMOUNT_MISMATCH: ("04", "Invalid amount"),
    Outcome.BAD_SIGNATURE: ("97", "Checksum failed"),
    Outcome.UNKNOWN_ERROR: ("99", "Unknown error"),
}

# Wallet family: HTTP status signals failure, resultCode explains it.
WALLET_ACKS = {
    Outcome.SUCCESS: (200, 0, "Payment processed successfully"),
    Outcome.ALREADY_PROCESSED: (200, 2, "Order already processed"),
    Outcome.NOT_FOUND: (404, 1, "Order not found"),
    Outcome.AMOUNT_MISMATCH: (400, 4, "Amount invalid"),
    Outcome.BAD_SIGNATURE: (400, 97, "Invalid signature"),
    Outcome.UNKNOWN_ERROR: (500, 99, "Unknown error"),
}


@dataclass
class Ack:
    status_code: int
    body: dict
    outcome: Outcome
    order: Order | None = None


def bank_ack(outcome: Outcome, order: Order | None = None) -> Ack:
    code, message = BANK_ACKS[outcome]
    return Ack(status_code=200, body={"RspCode": code, "Message": message}, outcome=outcome, order=order)


def wallet_ack(outcome: Outcome, order: Order | None = None) -> Ack:
    status, code, message = WALLET_ACKS[outcome]
    return Ack(status_code=status, body={"resultCode": code, "message": message}, outcome=outcome, order=order)


def _amount_matches(order: Order, notified) -> bool:
    try:
        return Decimal(str(notified)) == order.amount
    except (InvalidOperation, TypeError, ValueError):
        return False


def _find(order_id: str) -> Order | None:
    try:
        return ledger.get_order(order_id)
    except NotFoundError:
        return None


def _apply(order: Order, *, success: bool, transaction_id: str, error_code: str, error_message: str, clock=None):
    if success:
        result = ledger.complete_order(order.order_id, transaction_id=transaction_id, clock=clock)
    else:
        result = ledger.fail_order(order.order_id, error_code=error_code, error_message=error_message, clock=clock)
    return (Outcome.SUCCESS if result.applied else Outcome.ALREADY_PROCESSED), result.order


def _check_extra_data(order: Order, extra_data: str) -> None:
    sent = decode_extra_data(extra_data)
    stored = find_note(order.notes, PurchaseNote)
    if sent and stored and sent != stored:
        logger.warning("Wallet IPN extraData for %s does not match stored purchase note", order.order_id)


def process_wallet_ipn(payload: dict, *, clock=None) -> Ack:
    try:
        if not isinstance(payload, dict) or not wallet.verify_ipn(payload):
            logger.warning("Wallet IPN rejected: invalid signature (orderId=%s)", (payload or {}).get("orderId"))
            return wallet_ack(Outcome.BAD_SIGNATURE)

        order = _find(str(payload.get("orderId") or ""))
        if order is None:
            return wallet_ack(Outcome.NOT_FOUND)
        if not _amount_matches(order, payload.get("amount")):
            logger.warning("Wallet IPN amount mismatch for %s: %s != %s", order.order_id, payload.get("amount"), order.amount)
            return wallet_ack(Outcome.AMOUNT_MISMATCH, order)
        if not order.is_pending:
            return wallet_ack(Outcome.ALREADY_PROCESSED, order)
        _check_extra_data(order, payload.get("extraData") or "")

        result_code = str(payload.get("resultCode"))
        outcome, order = _apply(
            order,
            success=result_code == "0",
            transaction_id=str(payload.get("transId") or ""),
            error_code=result_code,
            error_message=str(payload.get("message") or ""),
            clock=clock,
        )
        return wallet_ack(outcome, order)
    except Exception:
        logger.exception("Wallet IPN processing crashed")
        return wallet_ack(Outcome.UNKNOWN_ERROR)


def _bank_pipeline(params: dict, *, success_check, clock=None) -> Ack:
    if not bank.verify(params):
        logger.warning("Bank callback rejected: checksum failed (vnp_TxnRef=%s)", params.get("vnp_TxnRef"))
        return bank_ack(Outcome.BAD_SIGNATURE)

    order = _find(str(params.get("vnp_TxnRef") or ""))
    if order is None:
        return bank_ack(Outcome.NOT_FOUND)
    try:
        notified = bank.from_minor(params.get("vnp_Amount"))
    except ValueError:
        notified = None
    if notified is None or not _amount_matches(order, notified):
        logger.warning("Bank callback amount mismatch for %s: %s", order.order_id, params.get("vnp_Amount"))
        return bank_ack(Outcome.AMOUNT_MISMATCH, order)
    if not order.is_pending:
        return bank_ack(Outcome.ALREADY_PROCESSED, order)

    response_code = str(params.get("vnp_ResponseCode") or "")
    outcome, order = _apply(
        order,
        success=success_check(params),
        transaction_id=str(params.get("vnp_TransactionNo") or ""),
        error_code=response_code,
        error_message=f"Transaction failed with code {response_code}",
        clock=clock,
    )
    return bank_ack(outcome, order)


def process_bank_ipn(params: dict, *, clock=None) -> Ack:
    try:
        return _bank_pipeline(
            params,
            success_check=lambda p: p.get("vnp_ResponseCode") == bank.SUCCESS_CODE,
            clock=clock,
        )
    except Exception:
        logger.exception("Bank IPN processing crashed")
        return bank_ack(Outcome.UNKNOWN_ERROR)


def process_bank_return(params: dict, *, clock=None) -> Ack:
    """Browser return leg. Success needs both the response and transaction status."""
    try:
        return _bank_pipeline(
            params,
            success_check=lambda p: (
                p.get("vnp_ResponseCode") == bank.SUCCESS_CODE
                and p.get("vnp_TransactionStatus") == bank.SUCCESS_CODE
            ),
            clock=clock,
        )
    except Exception:
        logger.exception("Bank return processing crashed")
        return bank_ack(Outcome.UNKNOWN_ERROR)
