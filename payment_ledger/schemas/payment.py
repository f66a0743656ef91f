"""
Pydantic schemas for payments.

PaymentRequest is the HTTP body. Amount rules are not
repeated here: the payment service is the single place that
decides whether an amount is acceptable.
"""

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field

ORDER_ID_PATTERN = r"^[A-Za-z0-9_-]{3,50}$"


class PaymentRequest(BaseModel):
    recipient_id: int
    amount: Decimal
    order_id: str | None = Field(default=None, pattern=ORDER_ID_PATTERN)
    payment_method: str = Field(default="transfer", min_length=1, max_length=50)
    product_name: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=1000)


class PaymentResult(BaseModel):
    """Outcome of a successful payment."""
    transaction_id: uuid.UUID
    order_id: str
    amount: Decimal
    sender_new_balance: Decimal
    receiver_new_balance: Decimal


class PaymentResponse(BaseModel):
    success: bool = True
    data: PaymentResult
