# app/core/models.py
"""
DATABASE MODELS for the finance assistant

Design Philosophy:
- Transactions table is the LEDGER (one row per money movement)
- Every row belongs to exactly one user (owner_id), every query filters on it
- amount is always >= 0, the direction lives in 'kind' (income/expense)
- occurred_at is when the money moved, created_at is when we recorded it
- Analytics never write here, they read an owner-scoped scan
"""

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    Numeric,
    TIMESTAMP,
    Text,
    JSON,
    Index,
    CheckConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.core.database import Base


# =========================
# User
# =========================
class User(Base):
    __tablename__ = "users_table"

    id = Column(Integer, primary_key=True, autoincrement=True)

    email = Column(String, nullable=False, unique=True, index=True)
    username = Column(String(100), nullable=False)
    password = Column(String, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Relationships
    transactions = relationship(
        "Transaction",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =========================
# Transaction (LEDGER)
# =========================
class Transaction(Base):
    """
    A single income or expense entry.

    Shapes we receive from the client:

    Manual entry:
        {
            "kind": "expense",
            "amount": 12.50,
            "category": "Food",
            "description": "Lunch",
            "occurredAt": "2025-01-15T12:30:00"
        }

    From a parsed receipt (client fills kind/category itself):
        {
            "kind": "expense",
            "amount": 84.20,
            "category": "Groceries",
            "description": "WHOLE FOODS MARKET",
            "occurredAt": "2025-01-14",
            "tags": ["receipt"]
        }
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # --- OWNERSHIP ---
    owner_id = Column(
        Integer,
        ForeignKey("users_table.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # --- CORE FINANCIAL DATA ---
    kind = Column(String(10), nullable=False)  # income / expense
    amount = Column(Numeric(15, 2), nullable=False)  # Always >= 0

    # --- DETAILS ---
    category = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text)

    # --- TIMESTAMPS ---
    occurred_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,  # Index for date range queries
    )  # When the transaction actually happened

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )  # When we recorded it

    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )  # Last modification

    # --- RELATIONSHIPS ---
    owner = relationship("User", back_populates="transactions")

    # --- CONSTRAINTS & INDEXES ---
    # Common query: "Get this user's transactions in a date range"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        CheckConstraint(
            "kind IN ('income', 'expense')", name="ck_transactions_kind"
        ),
        Index("idx_owner_occurred", "owner_id", "occurred_at"),
        Index("idx_owner_kind", "owner_id", "kind"),
    )
