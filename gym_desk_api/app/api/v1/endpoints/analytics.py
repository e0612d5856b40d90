"""Dashboard analytics endpoint for API v1."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....core.security import get_current_user
from ....services.statistics_service import StatisticsService
from ..deps import service
from ..responses import ok

router = APIRouter()


@router.get("")
async def overview(
    statistics: StatisticsService = Depends(service(StatisticsService)),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Member counts, revenue by invoice status and today's activity."""
    return ok(await statistics.overview())
