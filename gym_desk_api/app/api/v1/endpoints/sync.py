"""
Bulk-read endpoints consumed by replicas.

``GET /sync/{collection}`` returns every record of a collection in one
response without pagination.  Replicas call it at startup (and on a
manual "sync now") and replace their local copy wholesale.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....core.config import Settings
from ....core.db import SQLiteRepository
from ....core.errors import NotFoundError
from ....core.security import get_current_user
from ....services.activity_service import ActivityService, CheckInService
from ....services.followup_service import FollowUpService
from ....services.invoice_service import InvoiceService
from ....services.member_service import MemberService
from ....services.product_service import ProductService
from ....services.session_service import SessionService
from ....services.trainer_service import TrainerService
from ....services.visitor_service import VisitorService
from ..deps import get_repository, get_settings
from ..responses import ok

router = APIRouter()

SYNC_COLLECTIONS = {
    "members": MemberService,
    "invoices": InvoiceService,
    "trainers": TrainerService,
    "visitors": VisitorService,
    "followups": FollowUpService,
    "activities": ActivityService,
    "sessions": SessionService,
    "checkins": CheckInService,
    "products": ProductService,
}


@router.get("/{collection}")
async def bulk_read(
    collection: str,
    repository: SQLiteRepository = Depends(get_repository),
    app_settings: Settings = Depends(get_settings),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    service_cls = SYNC_COLLECTIONS.get(collection)
    if service_cls is None:
        raise NotFoundError(
            f"Unknown collection: {collection}",
            details=[{"field": "collection", "message": f"Must be one of: {', '.join(SYNC_COLLECTIONS)}"}],
        )
    rows = await service_cls(repository, app_settings).all()
    return ok(rows, message=f"{len(rows)} {collection}")
