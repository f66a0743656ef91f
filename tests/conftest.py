"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the
real database. Tables are created before each test and dropped
after it, so no test data persists.
"""

import os

# Must be set before payment_ledger.models.base builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from payment_ledger.main import app
from payment_ledger.models import Account, ApiKey, Balance, Base
from payment_ledger.models.base import get_db
from payment_ledger.services.locks import AccountLockManager


# A file database rather than :memory: so that the threads in
# the concurrency tests share one database through separate
# connections.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_factory():
    """For tests that need one session per thread."""
    return TestSessionLocal


@pytest.fixture
def lock_manager():
    return AccountLockManager()


@pytest.fixture
def make_account(db_session):
    """
    Factory for committed accounts.

    balance=None leaves the account without a balance row.
    api_key creates an active key for the account.
    """
    counter = {"n": 0}

    def _make(
        balance: str | None = None,
        banned: bool = False,
        verified: bool = True,
        api_key: str | None = None,
        email: str | None = None,
    ) -> Account:
        counter["n"] += 1
        account = Account(
            name=f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            banned=banned,
            verified=verified,
        )
        db_session.add(account)
        db_session.flush()

        if balance is not None:
            db_session.add(Balance(account_id=account.id, amount=Decimal(balance)))
        if api_key is not None:
            db_session.add(ApiKey(key=api_key, account_id=account.id))

        db_session.commit()
        return account

    return _make


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the app uses the
    test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
