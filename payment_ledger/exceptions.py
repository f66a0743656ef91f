"""
Payment failures.

Every way a payment can be rejected has its own exception
class and a stable code. The codes are part of the API
contract; callers match on them, not on messages.
"""


class PaymentError(Exception):
    """Base class for every failure raised by the payment core."""

    code = "PAYMENT_ERROR"
    default_message = "Payment processing failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


# --- Validation ---

class InvalidRequest(PaymentError):
    """Malformed input that is not an amount, such as a bad filter value."""

    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class InvalidAmount(PaymentError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be greater than 0"


# --- Policy ---

class SelfTransfer(PaymentError):
    code = "SELF_TRANSFER"
    default_message = "Cannot send to yourself"


class ReceiverNotVerified(PaymentError):
    code = "RECEIVER_NOT_VERIFIED"
    default_message = "Receiver account is not verified"


# --- Referential ---

class SenderNotFound(PaymentError):
    code = "SENDER_NOT_FOUND"
    default_message = "Sender not found or banned"


class ReceiverNotFound(PaymentError):
    code = "RECEIVER_NOT_FOUND"
    default_message = "Receiver not found or banned"


class SenderBalanceMissing(PaymentError):
    code = "SENDER_BALANCE_NOT_FOUND"
    default_message = "Sender balance not found"


# --- Business rule ---

class InsufficientFunds(PaymentError):
    code = "INSUFFICIENT_FUNDS"
    default_message = "Insufficient funds"


# --- Uniqueness ---

class DuplicateOrderId(PaymentError):
    code = "DUPLICATE_ORDERID"
    default_message = "Order ID already exists"


# --- Storage ---

class StorageFailure(PaymentError):
    """Unexpected persistence error. Nothing from the payment was kept."""

    code = "DATABASE_ERROR"
    default_message = "Payment could not be stored"


class LockTimeout(StorageFailure):
    code = "LOCK_TIMEOUT"
    default_message = "Timed out waiting for a balance lock"
