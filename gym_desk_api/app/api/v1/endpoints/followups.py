"""Follow-up endpoints for API v1."""

from ....schemas.followup import FollowUpCreate, FollowUpUpdate
from ....services.followup_service import FollowUpService
from .crud import build_crud_router

router = build_crud_router(FollowUpService, FollowUpCreate, FollowUpUpdate)
