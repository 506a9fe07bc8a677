"""Error taxonomy for the settlement subsystem.

Views turn these into JSON error bodies using ``status_code`` and ``code``.
Webhook processing never lets them escape to the transport layer.
"""


class PaymentError(Exception):
    status_code = 400
    code = "payment_error"

    def __init__(self, message: str = "", **extra):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.extra = extra

    def as_dict(self) -> dict:
        body = {"ok": False, "error": self.code, "message": self.message}
        body.update(self.extra)
        return body


class ValidationError(PaymentError):
    code = "validation_error"

    def __init__(self, message: str = "Invalid request", fields: dict | None = None):
        super().__init__(message, fields=fields or {})
        self.fields = fields or {}


class NotFoundError(PaymentError):
    status_code = 404
    code = "not_found"


class AuthorizationError(PaymentError):
    status_code = 403
    code = "forbidden"


class SignatureError(PaymentError):
    code = "invalid_signature"


class StateConflictError(PaymentError):
    status_code = 409
    code = "state_conflict"

    def __init__(self, message: str = "", reason: str = ""):
        super().__init__(message, reason=reason)
        self.reason = reason


class GatewayError(PaymentError):
    status_code = 502
    code = "gateway_error"
