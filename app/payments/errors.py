# app/payments/errors.py
from __future__ import annotations


class PaymentError(Exception):
    """
    Base for every failure that is converted to a JSON error body at the request boundary.
    """

    code = "PAYMENT_ERROR"
    status_code = 500
    default_message = "Payment error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(PaymentError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Missing phone or amount"


class UpstreamAuthError(PaymentError):
    code = "UPSTREAM_AUTH_ERROR"
    status_code = 500
    default_message = "Failed to get access token from Safaricom"


class UpstreamRejected(PaymentError):
    code = "UPSTREAM_REJECTED"
    status_code = 400
    default_message = "Safaricom did not return CheckoutRequestID"


class MissingCorrelationId(PaymentError):
    code = "MISSING_CORRELATION_ID"
    status_code = 400
    default_message = "Missing public_id in Callback URL"


class MalformedCallback(PaymentError):
    code = "MALFORMED_CALLBACK"
    status_code = 400
    default_message = "Malformed STK callback"


class PersistenceError(PaymentError):
    code = "PERSISTENCE_ERROR"
    status_code = 500
    default_message = "Database error"
