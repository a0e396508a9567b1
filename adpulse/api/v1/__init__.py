"""
API v1 routes
"""
from fastapi import APIRouter

from adpulse.api.v1 import ad_accounts, campaigns, cron, dashboard, health, meta, settings, users

api_router = APIRouter(prefix="/api/v1")

# Include routers
api_router.include_router(health.router)
api_router.include_router(meta.router)
api_router.include_router(users.router)
api_router.include_router(ad_accounts.router)
api_router.include_router(dashboard.router)
api_router.include_router(campaigns.router)
api_router.include_router(settings.router)
api_router.include_router(cron.router)
