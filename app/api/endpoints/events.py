# app/api/endpoints/events.py
"""
Live analytics over Server-Sent Events.

Not event driven: every SSE_INTERVAL_SECONDS we re-read the ledger and push
a fresh snapshot. The token comes as ?token= because EventSource cannot
send an Authorization header.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Annotated, AsyncIterator, Awaitable, Callable, Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core import config, database, schemas, models
from app.core.analytics import engine
from app.core.analytics.ledger import load_ledger
from app.core.database import get_db
from app.core.security import get_user_from_token

router = APIRouter(tags=["Events"])

db_dep = Annotated[AsyncSession, Depends(get_db)]

logger = logging.getLogger(__name__)

LATEST_LIMIT = 5


def get_session_factory() -> async_sessionmaker:
    return database.SessionLocal


def sse_frame(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def build_update(db: AsyncSession, owner_id: int) -> dict:
    latest = await db.execute(
        select(models.Transaction)
        .where(models.Transaction.owner_id == owner_id)
        .order_by(models.Transaction.occurred_at.desc(), models.Transaction.id.desc())
        .limit(LATEST_LIMIT)
    )
    count = (
        await db.execute(
            select(func.count())
            .select_from(models.Transaction)
            .where(models.Transaction.owner_id == owner_id)
        )
    ).scalar_one()
    summary = engine.dashboard_summary(await load_ledger(db, owner_id))

    return {
        "event": "update",
        "latestTransactions": [
            schemas.TransactionResponse.model_validate(txn).model_dump(
                mode="json", by_alias=True
            )
            for txn in latest.scalars().all()
        ],
        "transactionCount": count,
        "summary": schemas.DashboardSummaryResponse.model_validate(summary).model_dump(
            mode="json", by_alias=True
        ),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def analytics_events(
    is_disconnected: Callable[[], Awaitable[bool]],
    session_factory: async_sessionmaker,
    owner_id: int,
    interval: float,
) -> AsyncIterator[str]:
    yield sse_frame({"event": "connected", "message": "SSE connection established"})
    logger.info(f"SSE connection established for user {owner_id}")

    while not await is_disconnected():
        try:
            async with session_factory() as db:
                payload = await build_update(db, owner_id)
        except SQLAlchemyError as error:
            logger.error(f"Error sending SSE update for user {owner_id}: {error}")
            payload = {"event": "error", "message": "Failed to load analytics update"}
        yield sse_frame(payload)
        await asyncio.sleep(interval)

    logger.info(f"SSE connection closed for user {owner_id}")


@router.get("/sse")
async def analytics_stream(
    request: Request,
    db: db_dep,
    session_factory: Annotated[async_sessionmaker, Depends(get_session_factory)],
    token: Optional[str] = None,
):
    user = await get_user_from_token(token, db)
    return StreamingResponse(
        analytics_events(
            request.is_disconnected,
            session_factory,
            user.id,
            config.SSE_INTERVAL_SECONDS,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
