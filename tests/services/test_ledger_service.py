"""
Tests for the LedgerService: balances and history queries.
"""

from decimal import Decimal

import pytest

from payment_ledger.exceptions import InvalidRequest
from payment_ledger.models import MutationType, TransactionDirection
from payment_ledger.services.ledger_service import LedgerService
from payment_ledger.services.payment_service import PaymentService


@pytest.fixture
def pay(db_session, lock_manager):
    service = PaymentService(db_session, lock_manager)

    def _pay(sender, receiver, amount, **kwargs):
        return service.process_payment(sender.id, receiver.id, Decimal(amount), **kwargs)

    return _pay


# --- Balance ---

class TestGetBalance:

    def test_account_without_balance_row_has_zero(self, db_session, make_account):
        account = make_account()
        balance = LedgerService(db_session).get_balance(account.id)
        assert balance == Decimal("0.00")

    def test_unknown_account_has_zero(self, db_session):
        assert LedgerService(db_session).get_balance(424242) == Decimal("0.00")

    def test_balance_reflects_payments(self, db_session, make_account, pay):
        alice = make_account(balance="100.00")
        bob = make_account()
        pay(alice, bob, "12.34")

        ledger = LedgerService(db_session)
        assert ledger.get_balance(alice.id) == Decimal("87.66")
        assert ledger.get_balance(bob.id) == Decimal("12.34")


# --- Transactions ---

class TestListTransactions:

    def test_includes_sent_and_received_with_direction(
        self, db_session, make_account, pay
    ):
        alice = make_account(balance="100.00")
        bob = make_account(balance="100.00")
        carol = make_account(balance="100.00")
        pay(alice, bob, "10.00", order_id="first")
        pay(bob, alice, "5.00", order_id="second")
        pay(bob, carol, "1.00", order_id="unrelated")

        page = LedgerService(db_session).list_transactions(alice.id)

        assert page.total == 2
        assert page.has_more is False
        # Newest first
        assert [t.order_id for t in page.items] == ["second", "first"]
        assert page.items[0].direction == TransactionDirection.RECEIVED
        assert page.items[1].direction == TransactionDirection.SENT

    def test_pagination(self, db_session, make_account, pay):
        alice = make_account(balance="100.00")
        bob = make_account()
        for i in range(5):
            pay(alice, bob, "1.00", order_id=f"order-{i}")

        ledger = LedgerService(db_session)
        first = ledger.list_transactions(alice.id, limit=2, offset=0)
        last = ledger.list_transactions(alice.id, limit=2, offset=4)

        assert [t.order_id for t in first.items] == ["order-4", "order-3"]
        assert first.total == 5
        assert first.has_more is True
        assert [t.order_id for t in last.items] == ["order-0"]
        assert last.has_more is False

    def test_limit_and_offset_are_clamped(self, db_session, make_account):
        account = make_account()
        ledger = LedgerService(db_session)

        assert ledger.list_transactions(account.id, limit=1000).pagination.limit == 100
        assert ledger.list_transactions(account.id, limit=0).pagination.limit == 1
        assert ledger.list_transactions(account.id, offset=-3).pagination.offset == 0
        assert ledger.list_transactions(account.id).pagination.limit == 50

    def test_empty_history(self, db_session, make_account):
        account = make_account()
        page = LedgerService(db_session).list_transactions(account.id)
        assert page.items == []
        assert page.total == 0
        assert page.has_more is False


# --- Mutations ---

class TestListMutations:

    def _history(self, make_account, pay):
        alice = make_account(balance="100.00")
        bob = make_account(balance="100.00")
        pay(alice, bob, "10.00")
        pay(alice, bob, "20.00")
        pay(bob, alice, "5.00")
        return alice, bob

    def test_newest_first_with_transaction_reference(
        self, db_session, make_account, pay
    ):
        alice = make_account(balance="100.00")
        bob = make_account()
        first = pay(alice, bob, "10.00")
        second = pay(alice, bob, "20.00")

        page = LedgerService(db_session).list_mutations(alice.id)

        assert [m.transaction_id for m in page.items] == [
            second.transaction_id, first.transaction_id,
        ]
        assert page.items[0].prev_balance == Decimal("90.00")
        assert page.items[0].balance == Decimal("70.00")
        assert page.items[0].type == MutationType.DEBIT

    def test_summary_covers_all_matching_mutations(
        self, db_session, make_account, pay
    ):
        alice, _ = self._history(make_account, pay)

        page = LedgerService(db_session).list_mutations(alice.id, limit=1)

        assert len(page.items) == 1
        assert page.total == 3
        assert page.has_more is True
        assert page.summary.total_debits == Decimal("30.00")
        assert page.summary.total_credits == Decimal("5.00")
        assert page.summary.net_change == Decimal("-25.00")

    def test_type_filter_applies_to_items_and_summary(
        self, db_session, make_account, pay
    ):
        alice, _ = self._history(make_account, pay)
        ledger = LedgerService(db_session)

        debits = ledger.list_mutations(alice.id, mutation_type=MutationType.DEBIT)
        credits = ledger.list_mutations(alice.id, mutation_type="credit")

        assert debits.total == 2
        assert all(m.type == MutationType.DEBIT for m in debits.items)
        assert debits.summary.total_debits == Decimal("30.00")
        assert debits.summary.total_credits == Decimal("0.00")
        assert debits.summary.net_change == Decimal("-30.00")

        assert credits.total == 1
        assert credits.summary.total_credits == Decimal("5.00")
        assert credits.summary.net_change == Decimal("5.00")

    def test_net_change_matches_balance_movement(
        self, db_session, make_account, pay
    ):
        alice, bob = self._history(make_account, pay)
        ledger = LedgerService(db_session)

        for account in (alice, bob):
            summary = ledger.list_mutations(account.id).summary
            assert Decimal("100.00") + summary.net_change == ledger.get_balance(account.id)

    def test_no_mutations(self, db_session, make_account):
        account = make_account()
        page = LedgerService(db_session).list_mutations(account.id)
        assert page.items == []
        assert page.summary.total_debits == Decimal("0.00")
        assert page.summary.total_credits == Decimal("0.00")
        assert page.summary.net_change == Decimal("0.00")

    def test_unknown_type_filter_rejected(self, db_session, make_account):
        account = make_account()

        with pytest.raises(InvalidRequest) as exc_info:
            LedgerService(db_session).list_mutations(account.id, mutation_type="bogus")

        assert exc_info.value.code == "VALIDATION_ERROR"
        assert "bogus" in exc_info.value.message
