# app/api/endpoints/transactions.py
import logging
import math
from datetime import date, datetime, timezone
from typing import Annotated, Literal, Optional
from fastapi import APIRouter, HTTPException, Query, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select

from app.api.deps import parse_range
from app.core import schemas, models
from app.core.analytics import engine
from app.core.analytics.ledger import load_ledger, scoped_query
from app.core.database import get_db
from app.core.security import get_current_user

router = APIRouter(prefix="/transactions", tags=["Transactions"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
user_dep = Annotated[models.User, Depends(get_current_user)]

SORT_COLUMNS = {
    "occurred_at": models.Transaction.occurred_at,
    "amount": models.Transaction.amount,
    "category": models.Transaction.category,
    "created_at": models.Transaction.created_at,
}


async def get_owned_transaction(
    transaction_id: int, db: AsyncSession, owner_id: int
) -> models.Transaction:
    query = select(models.Transaction).where(
        models.Transaction.id == transaction_id,
        models.Transaction.owner_id == owner_id,
    )
    result = await db.execute(query)
    txn = result.scalars().first()
    if not txn:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Transaction not found")
    return txn


@router.get("", response_model=schemas.TransactionPage)
async def list_transactions(
    current_user: user_dep,
    db: db_dep,
    kind: Optional[engine.TransactionKind] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    sort_by: Literal["occurred_at", "amount", "category", "created_at"] = "occurred_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    query = scoped_query(current_user.id, parse_range(start_date, end_date), kind)
    if category:
        query = query.where(models.Transaction.category == category)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()

    column = SORT_COLUMNS[sort_by]
    order = column.desc() if sort_order == "desc" else column.asc()
    page_query = (
        query.order_by(order, models.Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(page_query)

    return {
        "transactions": result.scalars().all(),
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_items": total,
            "items_per_page": limit,
        },
    }


@router.post(
    "", response_model=schemas.TransactionResponse, status_code=status.HTTP_201_CREATED
)
async def create_transaction(
    payload: schemas.TransactionCreate,
    db: db_dep,
    current_user: user_dep,
):
    occurred_at = payload.occurred_at or datetime.now(timezone.utc)
    try:
        txn = models.Transaction(
            owner_id=current_user.id,
            kind=payload.kind.value,
            amount=payload.amount,
            category=payload.category,
            description=payload.description,
            occurred_at=engine.naive_utc(occurred_at),
            tags=payload.tags,
            notes=payload.notes,
        )
        db.add(txn)
        await db.commit()
        await db.refresh(txn)
        return txn
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to create transaction: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create transaction"
        )


@router.get("/summary", response_model=schemas.TransactionStats)
async def transaction_summary(
    current_user: user_dep,
    db: db_dep,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    date_range = parse_range(start_date, end_date)
    ledger = await load_ledger(db, current_user.id, date_range)
    summary = engine.dashboard_summary(ledger, date_range)
    return {
        "income": {"total": summary.income.total, "count": summary.income.count},
        "expense": {"total": summary.expense.total, "count": summary.expense.count},
        "net": summary.net_income,
    }


@router.get("/{transaction_id}", response_model=schemas.TransactionResponse)
async def get_transaction(transaction_id: int, db: db_dep, current_user: user_dep):
    return await get_owned_transaction(transaction_id, db, current_user.id)


@router.put("/{transaction_id}", response_model=schemas.TransactionResponse)
async def update_transaction(
    transaction_id: int,
    payload: schemas.TransactionUpdate,
    db: db_dep,
    current_user: user_dep,
):
    txn = await get_owned_transaction(transaction_id, db, current_user.id)
    changes = payload.model_dump(exclude_unset=True)
    if "kind" in changes:
        changes["kind"] = changes["kind"].value
    if "occurred_at" in changes:
        changes["occurred_at"] = engine.naive_utc(changes["occurred_at"])
    for k, v in changes.items():
        setattr(txn, k, v)
    try:
        db.add(txn)
        await db.commit()
        await db.refresh(txn)
        return txn
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to update transaction {transaction_id}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Update failed")


@router.delete("/{transaction_id}")
async def delete_transaction(transaction_id: int, db: db_dep, current_user: user_dep):
    txn = await get_owned_transaction(transaction_id, db, current_user.id)
    try:
        await db.delete(txn)
        await db.commit()
        return {"message": "Transaction deleted successfully"}
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to delete transaction {transaction_id}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Delete failed")
