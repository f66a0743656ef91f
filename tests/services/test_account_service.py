"""
Tests for the AccountService lookups and API key validation.
"""

from payment_ledger.models import ApiKey
from payment_ledger.services.account_service import AccountService


class TestAccountLookups:

    def test_existing_account(self, db_session, make_account):
        account = make_account()
        service = AccountService(db_session)

        assert service.account_exists(account.id) is True
        assert service.is_banned(account.id) is False
        assert service.is_verified(account.id) is True
        assert service.is_active_participant(account.id) is True

    def test_unknown_account(self, db_session):
        service = AccountService(db_session)

        assert service.account_exists(999) is False
        assert service.get_account(999) is None
        assert service.is_banned(999) is True
        assert service.is_verified(999) is False
        assert service.is_active_participant(999) is False

    def test_banned_account(self, db_session, make_account):
        account = make_account(banned=True)
        service = AccountService(db_session)

        assert service.account_exists(account.id) is True
        assert service.is_banned(account.id) is True
        assert service.is_active_participant(account.id) is False

    def test_unverified_account(self, db_session, make_account):
        account = make_account(verified=False)
        assert AccountService(db_session).is_verified(account.id) is False


class TestValidateApiKey:

    def test_valid_key_resolves_to_account(self, db_session, make_account):
        account = make_account(api_key="key-valid")
        service = AccountService(db_session)

        assert service.validate_api_key("key-valid") == account.id

    def test_valid_key_records_last_use(self, db_session, make_account):
        make_account(api_key="key-used")
        service = AccountService(db_session)

        service.validate_api_key("key-used")

        key = db_session.get(ApiKey, "key-used")
        assert key.last_used_at is not None

    def test_unknown_key(self, db_session):
        assert AccountService(db_session).validate_api_key("nope") is None

    def test_empty_key(self, db_session):
        assert AccountService(db_session).validate_api_key("") is None

    def test_inactive_key(self, db_session, make_account):
        make_account(api_key="key-revoked")
        key = db_session.get(ApiKey, "key-revoked")
        key.is_active = False
        db_session.commit()

        assert AccountService(db_session).validate_api_key("key-revoked") is None

    def test_banned_account_key(self, db_session, make_account):
        make_account(api_key="key-banned", banned=True)
        assert AccountService(db_session).validate_api_key("key-banned") is None

    def test_unverified_account_key(self, db_session, make_account):
        make_account(api_key="key-unverified", verified=False)
        assert AccountService(db_session).validate_api_key("key-unverified") is None
