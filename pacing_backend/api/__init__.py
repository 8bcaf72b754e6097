"""
API package initialization.

This package contains the FastAPI router modules for the pacing dashboard:
- pacing: month-to-date pacing summary and financial pace
- funnel: sales funnel and board activity
- financials: yearly overview and partner concentration
- sync: on-demand reconciliation triggers
"""

from fastapi import APIRouter

# Import router modules
from pacing_backend.api.pacing import router as pacing_router
from pacing_backend.api.funnel import activity_router, funnel_router
from pacing_backend.api.financials import router as financials_router
from pacing_backend.api.sync import router as sync_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(pacing_router, prefix="/pacing", tags=["pacing"])
api_router.include_router(funnel_router, prefix="/funnel", tags=["funnel"])
api_router.include_router(activity_router, prefix="/activity", tags=["activity"])
api_router.include_router(financials_router, prefix="/financials", tags=["financials"])
api_router.include_router(sync_router, prefix="/sync", tags=["sync"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "pacing_router",
    "funnel_router",
    "activity_router",
    "financials_router",
    "sync_router",
]
