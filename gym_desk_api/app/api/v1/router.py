"""
Top-level router for version 1 of the API.

This router aggregates the per-collection routers under a unified
prefix.  When a new collection is added, include its router here.
"""

from fastapi import APIRouter

from .endpoints import (
    activities,
    analytics,
    followups,
    invoices,
    members,
    products,
    sessions,
    settings,
    sync,
    trainers,
    visitors,
)

router = APIRouter()

router.include_router(members.router, prefix="/members", tags=["members"])
router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
router.include_router(trainers.router, prefix="/trainers", tags=["trainers"])
router.include_router(visitors.router, prefix="/visitors", tags=["visitors"])
router.include_router(followups.router, prefix="/followups", tags=["followups"])
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
router.include_router(products.router, prefix="/products", tags=["products"])
router.include_router(activities.router, prefix="/activities", tags=["activities"])
router.include_router(activities.checkins_router, prefix="/checkins", tags=["checkins"])
router.include_router(settings.router, prefix="/settings", tags=["settings"])
router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
router.include_router(sync.router, prefix="/sync", tags=["sync"])
