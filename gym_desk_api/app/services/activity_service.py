"""
Activity log: writing and querying the append-only audit trail.

Every mutation performed by the other services appends one entry via
:func:`record_activity`, inside the same transaction as the mutation
itself.  Entries are never edited or removed one by one; the whole log
may be cleared.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..core.config import Settings, settings
from ..core.db import RepositoryTransaction, SQLiteRepository
from ..core.errors import ValidationError
from ..core.rules import utc_now
from ..schemas.activity import ActivityRead, CheckInRead
from ..schemas.common import Pagination

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def record_activity(
    tx: RepositoryTransaction,
    type: str,
    action: str,
    name: str,
    details: Optional[str] = None,
    member_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Append an activity entry within an open transaction.

    Parameters
    ----------
    tx : RepositoryTransaction
        Transaction of the mutation being logged.
    type : str
        Kind of subject (``member``, ``invoice``, ``checkin``, ...).
    action : str
        Short human-readable label (e.g. "Member created").
    name : str
        Display name of the subject.
    details : Optional[str]
        Free-text description of the change.
    member_id, invoice_id : Optional[str]
        Optional references used to build per-member histories.
    """
    entry = ActivityRead(
        id=uuid.uuid4().hex,
        type=type,
        action=action,
        name=name,
        time=utc_now(),
        details=details,
        member_id=member_id,
        invoice_id=invoice_id,
    ).model_dump(mode="json")
    tx.insert("activities", entry)
    return entry


class ActivityService:
    """Read access to the activity log plus bulk clear."""

    def __init__(self, repository: SQLiteRepository, config: Settings = settings) -> None:
        self.repository = repository
        self.config = config

    async def list(
        self,
        type: Optional[str] = None,
        member_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Dict[str, Any]], Pagination]:
        """Return activities newest first with optional filters."""
        if page < 1 or limit < 1:
            raise ValidationError(
                "Invalid pagination",
                details=[{"field": "page" if page < 1 else "limit", "message": "must be at least 1"}],
            )
        limit = min(limit, MAX_PAGE_SIZE)
        rows, total = self.repository.query(
            "activities",
            filters={"type": type, "member_id": member_id},
            sort_by="time",
            order="desc",
            limit=limit,
            offset=(page - 1) * limit,
        )
        return rows, Pagination.build(page, limit, total)

    async def all(self) -> List[Dict[str, Any]]:
        return self.repository.find("activities", order_by="time", descending=True)

    async def clear(self) -> int:
        """Delete every activity entry and return how many were removed."""
        removed = self.repository.clear("activities")
        logger.info("Cleared %s activity entries", removed)
        return removed


class CheckInService:
    """Listing of member check-ins.

    Check-ins are created only through ``MemberService.check_in`` so the
    visit counter and the check-in row are written together.
    """

    def __init__(self, repository: SQLiteRepository, config: Settings = settings) -> None:
        self.repository = repository
        self.config = config

    async def list(self, on: Optional[date] = None, member_id: Optional[str] = None) -> List[Dict[str, Any]]:
        where = {"date": on.isoformat() if on else None, "member_id": member_id}
        return self.repository.find("checkins", where, order_by="check_in_time", descending=True)

    async def all(self) -> List[Dict[str, Any]]:
        return self.repository.find("checkins", order_by="check_in_time")

    @staticmethod
    def build(member: Dict[str, Any]) -> Dict[str, Any]:
        now = utc_now()
        return CheckInRead(
            id=uuid.uuid4().hex,
            member_id=member["id"],
            member_name=member["name"],
            check_in_time=now,
            date=now.date(),
        ).model_dump(mode="json")
