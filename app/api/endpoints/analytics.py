# app/api/endpoints/analytics.py
"""
Analytics routes.

Every route follows the same three steps:
1. validate query params into AnalyticsQuery (bad input never reaches the engine)
2. load the owner's ledger for the range
3. hand it to one engine function and shape the result
"""
from datetime import date, datetime, timezone
from typing import Annotated, List, Optional
from fastapi import APIRouter, Query, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select

from app.api.deps import parse_range
from app.core import schemas, models
from app.core.analytics import engine
from app.core.analytics.ledger import load_ledger, scoped_query
from app.core.database import get_db
from app.core.security import get_current_user

router = APIRouter(prefix="/analytics", tags=["Analytics"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
user_dep = Annotated[models.User, Depends(get_current_user)]


# Overridden in tests to pin the clock
def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_analytics_query(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: Optional[engine.Granularity] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = engine.DEFAULT_TOP_LIMIT,
    months: Annotated[int, Query(ge=1, le=120)] = 6,
) -> schemas.AnalyticsQuery:
    parse_range(start_date, end_date)
    return schemas.AnalyticsQuery(
        start_date=start_date,
        end_date=end_date,
        group_by=group_by,
        limit=limit,
        months=months,
    )


query_dep = Annotated[schemas.AnalyticsQuery, Depends(get_analytics_query)]


@router.get("/transactions", response_model=schemas.RawTransactionPage)
async def all_transactions(
    current_user: user_dep,
    db: db_dep,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    skip: Annotated[int, Query(ge=0)] = 0,
):
    query = scoped_query(current_user.id, parse_range(start_date, end_date))
    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(
            models.Transaction.occurred_at.desc(), models.Transaction.id.desc()
        )
        .offset(skip)
        .limit(limit)
    )
    return {
        "transactions": result.scalars().all(),
        "pagination": {"total": total, "limit": limit, "skip": skip},
    }


@router.get(
    "/expenses-by-category", response_model=List[schemas.CategoryTotalResponse]
)
async def expenses_by_category(current_user: user_dep, db: db_dep, params: query_dep):
    date_range = params.date_range()
    ledger = await load_ledger(
        db, current_user.id, date_range, engine.TransactionKind.EXPENSE
    )
    return [
        schemas.CategoryTotalResponse.model_validate(row)
        for row in engine.category_totals(ledger, date_range)
    ]


@router.get("/expenses-by-date", response_model=List[schemas.BucketTotalResponse])
async def expenses_by_date(current_user: user_dep, db: db_dep, params: query_dep):
    date_range = params.date_range()
    ledger = await load_ledger(
        db, current_user.id, date_range, engine.TransactionKind.EXPENSE
    )
    rows = engine.time_bucket_totals(
        ledger,
        date_range,
        granularity=params.group_by or engine.Granularity.DAY,
        kind=engine.KindFilter.EXPENSE,
    )
    return [schemas.BucketTotalResponse.model_validate(row) for row in rows]


@router.get(
    "/income-vs-expenses", response_model=List[schemas.ComparisonRowResponse]
)
async def income_vs_expenses(current_user: user_dep, db: db_dep, params: query_dep):
    date_range = params.date_range()
    ledger = await load_ledger(db, current_user.id, date_range)
    rows = engine.income_vs_expense(
        ledger, date_range, granularity=params.group_by or engine.Granularity.MONTH
    )
    return [schemas.ComparisonRowResponse.model_validate(row) for row in rows]


@router.get("/spending-trends", response_model=schemas.SpendingTrendsResponse)
async def spending_trends(
    current_user: user_dep,
    db: db_dep,
    params: query_dep,
    now: Annotated[datetime, Depends(get_now)],
):
    window = engine.trend_window(now, params.months)
    ledger = await load_ledger(
        db, current_user.id, window, engine.TransactionKind.EXPENSE
    )
    return engine.spending_trends(ledger, params.months, now=now)


@router.get("/top-categories", response_model=List[schemas.TopCategoryResponse])
async def top_categories(current_user: user_dep, db: db_dep, params: query_dep):
    date_range = params.date_range()
    ledger = await load_ledger(
        db, current_user.id, date_range, engine.TransactionKind.EXPENSE
    )
    rows = engine.top_categories(ledger, date_range, limit=params.limit)
    return [schemas.TopCategoryResponse.model_validate(row) for row in rows]


@router.get("/dashboard-summary", response_model=schemas.DashboardSummaryResponse)
async def dashboard_summary(current_user: user_dep, db: db_dep, params: query_dep):
    date_range = params.date_range()
    ledger = await load_ledger(db, current_user.id, date_range)
    summary = engine.dashboard_summary(ledger, date_range)
    return schemas.DashboardSummaryResponse.model_validate(summary)
