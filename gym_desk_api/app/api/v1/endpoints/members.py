"""
Member endpoints for API v1.

Besides CRUD these routes expose check-in, renewal, the expiring-soon
query, per-member statistics and a manual trigger for the expiry
sweep.  Static paths are declared before ``/{member_id}`` so they are
not captured by it.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from ....core.security import get_current_user
from ....schemas.member import MemberCreate, MemberRenew, MemberUpdate
from ....services.member_service import MemberService
from ..deps import service
from ..responses import ok

router = APIRouter()

get_service = service(MemberService)


@router.get("")
async def list_members(
    status_filter: Optional[str] = Query(None, alias="status"),
    membership_type: Optional[str] = None,
    assigned_trainer: Optional[str] = Query(None, alias="trainer_id"),
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: Optional[str] = None,
    order: str = "asc",
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """List members with filters, case-insensitive search and pagination.

    ``search`` matches name, e-mail or phone.  ``sort_by`` accepts
    ``name`` (default), ``created_at``, ``start_date``, ``expiry_date``,
    ``total_visits`` and ``last_visit``.
    """
    rows, pagination = await members.list(
        filters={"status": status_filter, "membership_type": membership_type, "assigned_trainer": assigned_trainer},
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
    )
    return ok(rows, pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: MemberCreate,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Register a member.  409 if the e-mail or phone is already in use."""
    return ok(await members.create(payload), message="Member created successfully")


@router.get("/expiring-soon")
async def expiring_soon(
    days: int = 30,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Active members whose membership ends within ``days`` (1-90)."""
    return ok(await members.expiring_soon(days))


@router.post("/expire")
async def expire_members(
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Run the expiry sweep now and return the ids that changed."""
    expired = await members.expire_overdue()
    return ok({"expired": expired}, message=f"{len(expired)} memberships expired")


@router.get("/{member_id}")
async def get_member(
    member_id: str,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Member with sessions, invoices and the ten most recent activities."""
    return ok(await members.get_detail(member_id))


@router.put("/{member_id}")
async def update_member(
    member_id: str,
    payload: MemberUpdate,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await members.update(member_id, payload), message="Member updated successfully")


@router.delete("/{member_id}")
async def delete_member(
    member_id: str,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Delete a member together with their invoices and follow-ups."""
    await members.delete(member_id)
    return ok(message="Member deleted successfully")


@router.post("/{member_id}/checkin")
async def check_in(
    member_id: str,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Record a visit.  400 ``INVALID_STATE`` unless the member is active."""
    return ok(await members.check_in(member_id), message="Check-in recorded")


@router.post("/{member_id}/renew")
async def renew(
    member_id: str,
    payload: MemberRenew,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await members.renew(member_id, payload), message="Membership renewed successfully")


@router.get("/{member_id}/stats")
async def member_stats(
    member_id: str,
    members: MemberService = Depends(get_service),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    return ok(await members.stats(member_id))
