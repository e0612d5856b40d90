"""
Business settings endpoints for API v1.

Pricing (membership and personal-training fees) and the
terms-and-conditions text can be read and replaced at runtime.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....core.security import get_current_user
from ....schemas.settings import Pricing, Terms
from ....services.settings_service import SettingsService
from ..deps import service
from ..responses import ok

router = APIRouter()

get_service = service(SettingsService)


@router.get("/pricing")
async def get_pricing(
    settings_service: SettingsService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await settings_service.get_pricing())


@router.put("/pricing")
async def set_pricing(
    payload: Pricing,
    settings_service: SettingsService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Replace the whole pricing block; omitted fees reset to their defaults."""
    return ok(await settings_service.set_pricing(payload), message="Pricing updated")


@router.get("/terms")
async def get_terms(
    settings_service: SettingsService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await settings_service.get_terms())


@router.put("/terms")
async def set_terms(
    payload: Terms,
    settings_service: SettingsService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await settings_service.set_terms(payload), message="Terms and conditions updated")
