# app/core/analytics/ledger.py
"""
Ledger access for analytics.

The database does the cheap part (owner + date filter), the engine does
the grouping. Rows are turned into frozen LedgerEntry values so nothing
downstream can touch the session or mutate a transaction.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models
from app.core.analytics.engine import DateRange, TransactionKind, naive_utc


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    kind: str
    amount: Decimal
    category: str
    occurred_at: datetime

    @classmethod
    def from_model(cls, txn: models.Transaction) -> "LedgerEntry":
        return cls(
            id=txn.id,
            kind=txn.kind,
            amount=Decimal(str(txn.amount)),
            category=txn.category,
            occurred_at=naive_utc(txn.occurred_at),
        )


def _start_of(bound) -> datetime:
    if isinstance(bound, datetime):
        return naive_utc(bound)
    return datetime.combine(bound, time.min)


def scoped_query(
    owner_id: int,
    date_range: Optional[DateRange] = None,
    kind: Optional[TransactionKind] = None,
) -> Select:
    """SELECT for one owner's transactions, optionally narrowed by range and kind."""
    query = select(models.Transaction).where(models.Transaction.owner_id == owner_id)

    if kind is not None:
        query = query.where(models.Transaction.kind == TransactionKind(kind).value)

    if date_range is not None:
        if date_range.start is not None:
            query = query.where(
                models.Transaction.occurred_at >= _start_of(date_range.start)
            )
        if date_range.end is not None:
            end = date_range.end
            if isinstance(end, datetime):
                query = query.where(models.Transaction.occurred_at <= naive_utc(end))
            else:
                # Whole end day is included
                query = query.where(
                    models.Transaction.occurred_at
                    < datetime.combine(end + timedelta(days=1), time.min)
                )

    return query


async def load_ledger(
    db: AsyncSession,
    owner_id: int,
    date_range: Optional[DateRange] = None,
    kind: Optional[TransactionKind] = None,
) -> List[LedgerEntry]:
    result = await db.execute(scoped_query(owner_id, date_range, kind))
    return [LedgerEntry.from_model(txn) for txn in result.scalars().all()]


def day_range(start: Optional[date], end: Optional[date]) -> DateRange:
    return DateRange(start=start, end=end).validate()
