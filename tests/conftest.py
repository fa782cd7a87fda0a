"""Pytest fixtures for testing"""

import os

# Point the application at SQLite before any module builds the engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cashflow_gateway.api.dependencies import get_today
from cashflow_gateway.api.main import create_app
from cashflow_gateway.domain.models import Transaction, TransactionStatus, TransactionType
from cashflow_gateway.infrastructure.database.models import AccountBalance, Base, TransactionRecord
from cashflow_gateway.infrastructure.database.session import get_db

TODAY = date(2026, 3, 10)

WORKSPACE_ID = "ws_family"
ACCOUNT_ID = "acc_checking"

# Test database: one in-memory connection shared across threads
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def today() -> date:
    return TODAY


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
    """Create FastAPI test client with test database and a fixed reference date"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for domain transactions with sensible defaults"""

    def _make(
        amount,
        when: date,
        type: TransactionType = TransactionType.EXPENSE,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        description: str = "Transaction",
        category_id: Optional[str] = None,
        category_name: Optional[str] = None,
        planned_date: Optional[date] = None,
    ) -> Transaction:
        return Transaction(
            amount=Decimal(str(amount)),
            description=description,
            type=type,
            status=status,
            transaction_date=when,
            planned_date=planned_date,
            category_id=category_id,
            category_name=category_name,
        )

    return _make


@pytest.fixture
def daily_history(make_transaction) -> Callable[..., list]:
    """Factory for a run of identical daily expenses ending the day before TODAY"""

    def _history(days: int, amount=100, end: date = TODAY - timedelta(days=1)) -> list:
        return [make_transaction(amount, end - timedelta(days=i), description="Groceries") for i in range(days)]

    return _history


@pytest.fixture
def seed_account(db: Session) -> Callable[..., None]:
    """Insert an account balance, daily spending history and planned transactions"""

    def _seed(
        balance=5000,
        history_days: int = 60,
        daily_spend=50,
        planned: Optional[list] = None,
        workspace_id: str = WORKSPACE_ID,
        account_id: str = ACCOUNT_ID,
    ) -> None:
        db.add(AccountBalance(account_id=account_id, workspace_id=workspace_id, actual_balance=Decimal(str(balance))))

        for i in range(1, history_days + 1):
            day = TODAY - timedelta(days=i)
            db.add(
                TransactionRecord(
                    workspace_id=workspace_id,
                    account_id=account_id,
                    amount=Decimal(str(daily_spend)),
                    description="Groceries",
                    type="expense",
                    status="completed",
                    transaction_date=day,
                    category_id="cat_food",
                    category_name="Food",
                )
            )

        for amount, txn_type, when, description in planned or []:
            db.add(
                TransactionRecord(
                    workspace_id=workspace_id,
                    account_id=account_id,
                    amount=Decimal(str(amount)),
                    description=description,
                    type=txn_type,
                    status="planned",
                    transaction_date=when,
                    planned_date=when,
                )
            )

        db.commit()

    return _seed
