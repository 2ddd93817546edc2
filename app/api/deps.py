# app/api/deps.py
from datetime import date
from typing import Optional
from fastapi import HTTPException, status

from app.core.analytics import engine
from app.core.analytics.ledger import day_range


def parse_range(start_date: Optional[date], end_date: Optional[date]) -> engine.DateRange:
    """Date filter from query params, 400 when the bounds are reversed."""
    try:
        return day_range(start_date, end_date)
    except engine.InvalidQuery:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, "start_date must be on or before end_date"
        )
