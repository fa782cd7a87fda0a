"""SQLAlchemy ORM models for transactions, balances and forecast settings"""

import uuid

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TransactionRecord(Base):
    """Completed or planned transaction on an account"""

    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Text, nullable=False, index=True)
    account_id = Column(Text, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(Text, nullable=False)  # income | expense | transfer_in | transfer_out
    status = Column(Text, nullable=False, default="completed")  # completed | planned
    transaction_date = Column(Date, nullable=False, index=True)
    planned_date = Column(Date, nullable=True)
    category_id = Column(Text, nullable=True)
    category_name = Column(Text, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AccountBalance(Base):
    """Reconciled actual balance of an account"""

    __tablename__ = "account_balances"

    account_id = Column(Text, primary_key=True)
    workspace_id = Column(Text, nullable=False, index=True)
    actual_balance = Column(Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserSettings(Base):
    """Per-workspace forecast thresholds"""

    __tablename__ = "user_settings"

    workspace_id = Column(Text, primary_key=True)
    minimum_safe_balance = Column(Numeric(14, 2), nullable=True)
    safety_buffer_days = Column(Integer, nullable=True)
