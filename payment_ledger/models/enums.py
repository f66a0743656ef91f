"""
Shared enumerations for database models.

Values are stored as lowercase strings, the same values
the API exposes.
"""

import enum


class MutationType(str, enum.Enum):
    """Direction of a balance change."""
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionDirection(str, enum.Enum):
    """Role of an account in a transaction, derived at read time."""
    SENT = "sent"
    RECEIVED = "received"
