"""
Backend API package initialization.

This package contains FastAPI router modules for FulQrun deal analytics:
- progression: Stage-gate evaluation and auto-advance eligibility
- analytics: Stateless deal, portfolio and opportunity analytics
- opportunities: Analytics and stage changes for stored opportunities
"""

from fastapi import APIRouter

# Import router modules
from fulqrun.api.progression import router as progression_router
from fulqrun.api.analytics import router as analytics_router
from fulqrun.api.opportunities import router as opportunities_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(progression_router, prefix="/progression", tags=["progression"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
api_router.include_router(opportunities_router, prefix="/opportunities", tags=["opportunities"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "progression_router",
    "analytics_router",
    "opportunities_router",
]
