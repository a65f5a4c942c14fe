"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from budget_copilot.api.main import create_app
from budget_copilot.infrastructure.database.models import Base
from budget_copilot.infrastructure.database.session import get_db
from budget_copilot.domain.models import (
    Account,
    AccountType,
    Debt,
    FinancialSnapshot,
    RecurringItem,
    Transaction,
    TransactionType,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2026, 3, 10)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def make_snapshot(
    cash_cents: int = 0,
    monthly_spend_cents: int = 0,
    bills: list[tuple[str, int, date]] | None = None,
    payday: date | None = None,
    debts: list[Debt] | None = None,
) -> FinancialSnapshot:
    """Snapshot with one checking account, one 30-day spend total, and optional bills/payday/debts"""
    recurring = [
        RecurringItem(name=name, kind=TransactionType.EXPENSE, amount_cents=amount, next_due_date=due)
        for name, amount, due in (bills or [])
    ]
    if payday is not None:
        recurring.append(
            RecurringItem(name="Salary", kind=TransactionType.INCOME, amount_cents=300000, next_due_date=payday)
        )

    return FinancialSnapshot(
        accounts=[Account(account_id="chk", type=AccountType.CHECKING, balance_cents=cash_cents)],
        expenses_30d=[Transaction(amount_cents=monthly_spend_cents)] if monthly_spend_cents else [],
        recurring=recurring,
        debts=debts or [],
    )


@pytest.fixture
def card_a() -> Debt:
    return Debt(debt_id="card_a", name="CardA", balance_cents=200000, apr_percent=24.0, minimum_payment_cents=6000)


@pytest.fixture
def card_b() -> Debt:
    return Debt(debt_id="card_b", name="CardB", balance_cents=50000, apr_percent=15.0, minimum_payment_cents=2500)


@pytest.fixture
def comfortable_snapshot(card_a: Debt, card_b: Debt) -> FinancialSnapshot:
    """Plenty of cash, modest spending, two credit cards"""
    return make_snapshot(
        cash_cents=900000,  # $9000
        monthly_spend_cents=150000,  # $1500/month -> $50/day
        payday=TODAY + timedelta(days=10),
        debts=[card_a, card_b],
    )


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def snapshot_factory():
    return make_snapshot
