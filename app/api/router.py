from fastapi import APIRouter
from app.api.endpoints import analytics, auth, events, receipts, transactions

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(auth.router)
api_router.include_router(transactions.router)
api_router.include_router(analytics.router)
api_router.include_router(receipts.router)
api_router.include_router(events.router)
