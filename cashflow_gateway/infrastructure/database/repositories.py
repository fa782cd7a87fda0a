"""Data access layer for transactions, balances and forecast settings"""

from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cashflow_gateway.domain.exceptions import AccountNotFoundError, TransactionSourceError
from cashflow_gateway.domain.models import ForecastSettings, Transaction, TransactionStatus, TransactionType
from cashflow_gateway.infrastructure.database.models import AccountBalance, TransactionRecord, UserSettings
from cashflow_gateway.infrastructure.observability.metrics import repository_failures_counter

_SPENDING_TYPES = (TransactionType.INCOME.value, TransactionType.EXPENSE.value)


def to_domain(record: TransactionRecord) -> Transaction:
    """Map an ORM row to the immutable domain transaction"""
    return Transaction(
        amount=Decimal(record.amount),
        description=record.description or "",
        type=TransactionType(record.type),
        status=TransactionStatus(record.status),
        transaction_date=record.transaction_date,
        planned_date=record.planned_date,
        category_id=record.category_id,
        category_name=record.category_name,
    )


class TransactionRepository:
    """Read-only repository for account transactions (soft-deleted rows excluded)"""

    def __init__(self, db: Session):
        self.db = db

    def _run(self, query) -> List[Transaction]:
        try:
            return [to_domain(row) for row in query.all()]
        except SQLAlchemyError as e:
            repository_failures_counter.inc()
            raise TransactionSourceError(f"Transaction query failed: {e}") from e

    def get_historical_transactions(self, workspace_id: str, account_id: str, since: date) -> List[Transaction]:
        """Completed income/expense transactions on or after since, oldest first"""
        query = (
            self.db.query(TransactionRecord)
            .filter(
                TransactionRecord.workspace_id == workspace_id,
                TransactionRecord.account_id == account_id,
                TransactionRecord.status == TransactionStatus.COMPLETED.value,
                TransactionRecord.type.in_(_SPENDING_TYPES),
                TransactionRecord.transaction_date >= since,
                TransactionRecord.deleted_at.is_(None),
            )
            .order_by(TransactionRecord.transaction_date.asc())
        )
        return self._run(query)

    def get_planned_transactions(self, workspace_id: str, account_id: str, start: date, end: date) -> List[Transaction]:
        """Planned transactions whose effective date falls within [start, end]"""
        effective_date = func.coalesce(TransactionRecord.planned_date, TransactionRecord.transaction_date)
        query = (
            self.db.query(TransactionRecord)
            .filter(
                TransactionRecord.workspace_id == workspace_id,
                TransactionRecord.account_id == account_id,
                TransactionRecord.status == TransactionStatus.PLANNED.value,
                effective_date >= start,
                effective_date <= end,
                TransactionRecord.deleted_at.is_(None),
            )
            .order_by(effective_date.asc(), TransactionRecord.created_at.asc())
        )
        return self._run(query)

    def get_workspace_transactions(self, workspace_id: str, start: date, end: date) -> List[Transaction]:
        """Completed transactions across every account of a workspace"""
        query = (
            self.db.query(TransactionRecord)
            .filter(
                TransactionRecord.workspace_id == workspace_id,
                TransactionRecord.status == TransactionStatus.COMPLETED.value,
                TransactionRecord.transaction_date >= start,
                TransactionRecord.transaction_date <= end,
                TransactionRecord.deleted_at.is_(None),
            )
            .order_by(TransactionRecord.transaction_date.desc())
        )
        return self._run(query)


class AccountRepository:
    """Repository for reconciled account balances"""

    def __init__(self, db: Session):
        self.db = db

    def get_current_balance(self, workspace_id: str, account_id: str) -> Decimal:
        try:
            record = (
                self.db.query(AccountBalance)
                .filter(
                    AccountBalance.workspace_id == workspace_id,
                    AccountBalance.account_id == account_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            repository_failures_counter.inc()
            raise TransactionSourceError(f"Balance query failed: {e}") from e

        if record is None:
            raise AccountNotFoundError(f"Account {account_id} not found in workspace {workspace_id}")

        return Decimal(record.actual_balance)


class SettingsRepository:
    """Repository for per-workspace forecast settings"""

    def __init__(self, db: Session):
        self.db = db

    def get_forecast_settings(self, workspace_id: str, defaults: ForecastSettings) -> ForecastSettings:
        """Stored settings, falling back to defaults for missing or zero values"""
        try:
            record = self.db.query(UserSettings).filter(UserSettings.workspace_id == workspace_id).first()
        except SQLAlchemyError as e:
            repository_failures_counter.inc()
            raise TransactionSourceError(f"Settings query failed: {e}") from e

        if record is None:
            return defaults

        return ForecastSettings(
            minimum_safe_balance=(
                Decimal(record.minimum_safe_balance) if record.minimum_safe_balance else defaults.minimum_safe_balance
            ),
            safety_buffer_days=record.safety_buffer_days or defaults.safety_buffer_days,
        )
