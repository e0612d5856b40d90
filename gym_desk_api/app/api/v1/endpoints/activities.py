"""
Activity log and check-in endpoints for API v1.

The activity log is read-only apart from a bulk clear.  Check-ins are
created through ``POST /members/{id}/checkin``; here they can only be
listed.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ....core.security import get_current_user
from ....services.activity_service import ActivityService, CheckInService
from ..deps import service
from ..responses import ok

router = APIRouter()
checkins_router = APIRouter()


@router.get("")
async def list_activities(
    type: Optional[str] = None,
    member_id: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    activities: ActivityService = Depends(service(ActivityService)),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Activities, newest first."""
    rows, pagination = await activities.list(type=type, member_id=member_id, page=page, limit=limit)
    return ok(rows, pagination=pagination)


@router.delete("")
async def clear_activities(
    activities: ActivityService = Depends(service(ActivityService)),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    removed = await activities.clear()
    return ok({"removed": removed}, message="Activity log cleared")


@checkins_router.get("")
async def list_checkins(
    on: Optional[date] = Query(None, alias="date"),
    member_id: Optional[str] = None,
    checkins: CheckInService = Depends(service(CheckInService)),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Check-ins, newest first, optionally for one day or one member."""
    return ok(await checkins.list(on=on, member_id=member_id))
