"""
Payment service: the atomic transfer between two accounts.

A payment:
1. Validates the amount (positive, finite, at most 2 decimals)
2. Rejects self-transfers
3. Checks that sender and receiver exist and are not banned
4. Resolves the order id (caller supplied or generated)
5. Locks both balances, lowest account id first
6. Checks the sender can afford the amount
7. Debits the sender, credits (or creates) the receiver balance
8. Writes one transaction and two mutations
9. Commits

Steps 1-4 run before any lock is taken and never write. Steps
5-9 share one database transaction: either every write is
committed or none is. All failures raise a PaymentError
subclass and leave the session rolled back.
"""

import logging
import time
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from payment_ledger.config import Settings, get_settings
from payment_ledger.exceptions import (
    PaymentError,
    InvalidAmount,
    SelfTransfer,
    SenderNotFound,
    ReceiverNotFound,
    ReceiverNotVerified,
    SenderBalanceMissing,
    InsufficientFunds,
    DuplicateOrderId,
    StorageFailure,
    LockTimeout,
)
from payment_ledger.models.balance import Balance
from payment_ledger.models.enums import MutationType
from payment_ledger.models.mutation import Mutation
from payment_ledger.models.transaction import Transaction
from payment_ledger.schemas.payment import PaymentResult
from payment_ledger.services.account_service import AccountService
from payment_ledger.services.locks import AccountLockManager

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("999999999.99")

# SQLSTATE raised by PostgreSQL when lock_timeout expires
PG_LOCK_NOT_AVAILABLE = "55P03"

# Dialects with INSERT ... ON CONFLICT DO NOTHING
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def validate_amount(amount) -> Decimal:
    """
    Return the amount as a 2-decimal Decimal, or raise InvalidAmount.

    Accepts Decimal, int, float and numeric strings. Rejects
    booleans, non-finite values, zero, negatives, amounts above
    MAX_AMOUNT and anything with more than two decimal places.
    """
    if isinstance(amount, bool):
        raise InvalidAmount("Amount must be a number")

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount("Amount must be a number")

    if not value.is_finite():
        raise InvalidAmount("Amount must be a finite number")
    if value <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    if value > MAX_AMOUNT:
        raise InvalidAmount(f"Amount cannot exceed {MAX_AMOUNT}")
    if value != value.quantize(CENT):
        raise InvalidAmount("Amount must have at most 2 decimal places")

    return value.quantize(CENT)


def generate_order_id() -> str:
    """Build an order id like TRX_20250101_120000_1a2b3c4d."""
    return (
        f"TRX_{datetime.utcnow():%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"
    )


def lock_timeout_ms(seconds: float) -> int:
    """
    Convert a lock wait budget to a PostgreSQL lock_timeout.

    Never returns 0: PostgreSQL reads lock_timeout = 0 as "wait
    forever".
    """
    return max(1, int(seconds * 1000))


def _is_lock_timeout(exc: OperationalError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == PG_LOCK_NOT_AVAILABLE:
        return True
    # SQLite reports an expired busy timeout this way
    return "database is locked" in str(orig)


class PaymentService:
    """
    Moves money from one account to another.

    Takes the session and the lock manager as constructor
    arguments. Unlike the read-side services, this service owns
    the commit: the in-process locks must stay held until the
    database transaction has finished.
    """

    def __init__(
        self,
        db: Session,
        lock_manager: AccountLockManager,
        settings: Settings | None = None,
    ):
        self.db = db
        self.lock_manager = lock_manager
        self.settings = settings or get_settings()
        self.account_service = AccountService(db)

    def process_payment(
        self,
        sender_id: int,
        receiver_id: int,
        amount,
        order_id: str | None = None,
        payment_method: str | None = None,
        product_name: str | None = None,
        notes: str | None = None,
    ) -> PaymentResult:
        """
        Transfer `amount` from sender to receiver.

        Returns a PaymentResult on success. Raises a PaymentError
        subclass on failure; in that case nothing was written.
        """
        try:
            amount = validate_amount(amount)
            if sender_id == receiver_id:
                raise SelfTransfer()
            self._check_parties(sender_id, receiver_id)
            resolved_order_id = self._resolve_order_id(order_id)

            # One budget covers both the in-process and the row locks
            lock_timeout = self.settings.LOCK_TIMEOUT_SECONDS
            started = time.monotonic()
            with self.lock_manager.hold(
                sender_id,
                receiver_id,
                timeout=lock_timeout,
            ):
                try:
                    self._set_lock_timeout(
                        lock_timeout - (time.monotonic() - started)
                    )
                    result = self._transfer(
                        sender_id=sender_id,
                        receiver_id=receiver_id,
                        amount=amount,
                        order_id=resolved_order_id,
                        payment_method=payment_method or "transfer",
                        product_name=product_name,
                        notes=notes,
                    )
                    self.db.commit()
                except Exception:
                    # Release row locks before the in-process locks
                    self.db.rollback()
                    raise

        except PaymentError as e:
            self.db.rollback()
            logger.warning(
                "Payment rejected (%s): sender=%s receiver=%s amount=%s: %s",
                e.code, sender_id, receiver_id, amount, e.message,
            )
            raise
        except IntegrityError as e:
            self.db.rollback()
            if order_id is not None and self._order_id_taken(order_id):
                logger.warning("Payment rejected: order id %s taken concurrently", order_id)
                raise DuplicateOrderId(f"Order ID '{order_id}' already exists") from e
            logger.exception("Integrity error while storing payment")
            raise StorageFailure(str(e.orig)) from e
        except OperationalError as e:
            self.db.rollback()
            if _is_lock_timeout(e):
                logger.warning(
                    "Payment timed out waiting for balance lock: sender=%s receiver=%s",
                    sender_id, receiver_id,
                )
                raise LockTimeout() from e
            logger.exception("Database error while storing payment")
            raise StorageFailure(str(e.orig)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error while storing payment")
            raise StorageFailure(str(e)) from e
        except Exception as e:
            self.db.rollback()
            logger.exception("Unexpected error while processing payment")
            raise StorageFailure(str(e)) from e

        logger.info(
            "Payment %s completed: %s -> %s amount=%s",
            result.order_id, sender_id, receiver_id, result.amount,
        )
        return result

    # --- Preconditions (no locks, no writes) ---

    def _check_parties(self, sender_id: int, receiver_id: int) -> None:
        if not self.account_service.is_active_participant(sender_id):
            raise SenderNotFound()
        if not self.account_service.is_active_participant(receiver_id):
            raise ReceiverNotFound()
        if (
            self.settings.REQUIRE_VERIFIED_RECEIVER
            and not self.account_service.is_verified(receiver_id)
        ):
            raise ReceiverNotVerified()

    def _order_id_taken(self, order_id: str) -> bool:
        return self.db.execute(
            select(Transaction.id).where(Transaction.order_id == order_id).limit(1)
        ).first() is not None

    def _resolve_order_id(self, order_id: str | None) -> str:
        """
        Return the order id to use for this payment.

        A caller-supplied id must be unused. A generated id is
        retried a bounded number of times if it collides.
        """
        if order_id is not None:
            if self._order_id_taken(order_id):
                raise DuplicateOrderId(f"Order ID '{order_id}' already exists")
            return order_id

        for _ in range(self.settings.ORDER_ID_MAX_ATTEMPTS):
            candidate = generate_order_id()
            if not self._order_id_taken(candidate):
                return candidate

        raise StorageFailure("Could not generate a unique order ID")

    # --- Locked section ---

    def _set_lock_timeout(self, seconds: float) -> None:
        """Bound how long PostgreSQL waits for a row lock."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        timeout_ms = lock_timeout_ms(seconds)
        self.db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))

    def _ensure_balance_row(self, account_id: int) -> None:
        """
        Insert a zero balance row unless one exists.

        FOR UPDATE cannot lock a row that is not there yet. With
        the row in place, two first credits to the same account
        queue on the row lock instead of racing on the primary key.
        The row is rolled back with the rest of a failed payment.
        """
        insert = UPSERT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert is None:
            return
        self.db.execute(
            insert(Balance)
            .values(
                account_id=account_id,
                amount=Decimal("0.00"),
                updated_at=datetime.utcnow(),
            )
            .on_conflict_do_nothing(index_elements=[Balance.account_id])
        )

    def _lock_balance(self, account_id: int) -> Balance | None:
        # populate_existing: never trust a copy loaded before the lock
        return self.db.execute(
            select(Balance)
            .where(Balance.account_id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _transfer(
        self,
        sender_id: int,
        receiver_id: int,
        amount: Decimal,
        order_id: str,
        payment_method: str,
        product_name: str | None,
        notes: str | None,
    ) -> PaymentResult:
        locked = {}
        for account_id in sorted((sender_id, receiver_id)):
            if account_id == receiver_id:
                self._ensure_balance_row(account_id)
            locked[account_id] = self._lock_balance(account_id)
        sender_balance = locked[sender_id]
        receiver_balance = locked[receiver_id]

        # --- Funds check ---
        if sender_balance is None:
            raise SenderBalanceMissing()
        if sender_balance.amount < amount:
            raise InsufficientFunds(
                f"Insufficient funds: available={sender_balance.amount}, "
                f"requested={amount}"
            )

        now = datetime.utcnow()

        # --- Debit sender ---
        sender_prev = sender_balance.amount
        sender_new = (sender_prev - amount).quantize(CENT)
        sender_balance.amount = sender_new
        sender_balance.updated_at = now

        # --- Credit receiver; dialects without ON CONFLICT create the row here ---
        if receiver_balance is None:
            receiver_prev = Decimal("0.00")
            receiver_balance = Balance(account_id=receiver_id, updated_at=now)
            self.db.add(receiver_balance)
        else:
            receiver_prev = receiver_balance.amount
        receiver_new = (receiver_prev + amount).quantize(CENT)
        receiver_balance.amount = receiver_new
        receiver_balance.updated_at = now

        # --- Transaction record ---
        txn = Transaction(
            external_id=uuid.uuid4(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            paid=True,
            items=1,
            order_id=order_id,
            payment_method=payment_method,
            grand_total=amount,
            product_name=product_name,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.db.add(txn)
        self.db.flush()

        # --- Paired mutations ---
        note = str(txn.external_id)
        self.db.add_all([
            Mutation(
                account_id=sender_id,
                balance=sender_new,
                prev_balance=sender_prev,
                type=MutationType.DEBIT,
                note=note,
                transaction_id=txn.id,
                created_at=now,
            ),
            Mutation(
                account_id=receiver_id,
                balance=receiver_new,
                prev_balance=receiver_prev,
                type=MutationType.CREDIT,
                note=note,
                transaction_id=txn.id,
                created_at=now,
            ),
        ])
        self.db.flush()

        return PaymentResult(
            transaction_id=txn.external_id,
            order_id=order_id,
            amount=amount,
            sender_new_balance=sender_new,
            receiver_new_balance=receiver_new,
        )
