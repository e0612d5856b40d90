"""
Business logic for gym members.

Besides the generic CRUD operations this service enforces e-mail and
phone uniqueness, derives ``expiry_date`` from the membership type,
cascades deletes to invoices and follow-ups, and implements check-in,
renewal, the expiring-soon query, per-member statistics and the
expiry sweep.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..core.errors import ConflictError, InvalidStateError, ValidationError
from ..core.rules import compute_expiry_date, is_lapsed, parse_date, quantize_money, timestamp, today, utc_now
from ..schemas.member import MemberCreate, MemberRead, MemberRenew, MemberUpdate
from .activity_service import CheckInService, record_activity
from .base import CollectionService

logger = logging.getLogger(__name__)

MIN_EXPIRING_DAYS = 1
MAX_EXPIRING_DAYS = 90
RECENT_ACTIVITY_LIMIT = 10
STATS_ACTIVITY_LIMIT = 5


class MemberService(CollectionService):
    table = "members"
    label = "Member"
    activity_type = "member"

    create_schema = MemberCreate
    update_schema = MemberUpdate
    read_schema = MemberRead

    filter_fields = ("status", "membership_type", "assigned_trainer")
    search_columns = ("name", "email", "phone")
    sort_fields = ("name", "created_at", "start_date", "expiry_date", "total_visits", "last_visit")
    default_sort = "name"

    def activity_refs(self, record):
        return {"member_id": record["id"]}

    def ensure_unique(self, tx, record: Dict[str, Any], exclude_id: Optional[str] = None) -> None:
        """Raise ``ConflictError`` if another member uses the e-mail or phone."""
        for field in ("email", "phone"):
            value = record.get(field)
            if not value:
                continue
            for other in tx.find(self.table, {field: value}):
                if other["id"] != exclude_id:
                    raise ConflictError(
                        f"A member with this {field} already exists",
                        details=[{"field": field, "message": f"{value} is already registered"}],
                    )

    def prepare_create(self, tx, record):
        self.ensure_unique(tx, record)
        if not record.get("expiry_date"):
            record["expiry_date"] = compute_expiry_date(record["start_date"], record["membership_type"])
        record["total_visits"] = 0
        record["last_visit"] = None
        return record

    def prepare_update(self, tx, current, record, changes):
        if "email" in changes or "phone" in changes:
            self.ensure_unique(tx, changes, exclude_id=current["id"])
        renewed = "membership_type" in changes or "start_date" in changes
        if renewed and "expiry_date" not in changes:
            record["expiry_date"] = compute_expiry_date(
                parse_date(record["start_date"]), record["membership_type"]
            )
        return record

    def before_delete(self, tx, record):
        invoices = tx.delete_where("invoices", "member_id", record["id"])
        followups = tx.delete_where("followups", "member_id", record["id"])
        logger.info(
            "Deleting member %s cascades to %s invoices and %s follow-ups", record["id"], invoices, followups
        )

    async def get_detail(self, member_id: str) -> Dict[str, Any]:
        """Return the member with related sessions, invoices and recent activity."""
        with self.repository.transaction() as tx:
            member = self.require(tx, self.table, member_id, self.label)
            member["sessions"] = tx.find("sessions", {"member_id": member_id}, order_by="start_time", descending=True)
            member["invoices"] = tx.find("invoices", {"member_id": member_id}, order_by="created_at", descending=True)
            member["recent_activities"] = tx.find(
                "activities", {"member_id": member_id}, order_by="time", descending=True,
                limit=RECENT_ACTIVITY_LIMIT,
            )
        return member

    def check_in_member(self, tx, member_id: str) -> Dict[str, Any]:
        member = self.require(tx, self.table, member_id, self.label)
        if member["status"] != "active":
            raise InvalidStateError(
                f"Only active members can check in (current status: {member['status']})"
            )
        checkin = CheckInService.build(member)
        tx.insert("checkins", checkin)
        tx.increment(
            self.table,
            member_id,
            "total_visits",
            1,
            {"last_visit": checkin["check_in_time"], "updated_at": checkin["check_in_time"]},
        )
        record_activity(tx, "checkin", "Member checked in", member["name"], member_id=member_id)
        return {"check_in": checkin, "member": tx.get(self.table, member_id)}

    def renew_member(self, tx, member_id: str, renewal: MemberRenew) -> Dict[str, Any]:
        member = self.require(tx, self.table, member_id, self.label)
        expiry = compute_expiry_date(renewal.start_date, renewal.membership_type)
        record = {
            **member,
            "membership_type": renewal.membership_type,
            "start_date": renewal.start_date,
            "expiry_date": expiry,
            "status": "active",
            "updated_at": utc_now(),
        }
        stored = self.to_stored(record)
        tx.update(self.table, member_id, stored)
        record_activity(
            tx,
            self.activity_type,
            "Membership renewed",
            member["name"],
            details=f"{renewal.membership_type} membership until {expiry.isoformat()}",
            member_id=member_id,
        )
        return stored

    def expire_members(self, tx, on: date) -> List[str]:
        expired: List[str] = []
        for member in tx.find(self.table, {"status": "active"}):
            if not is_lapsed(member, on):
                continue
            tx.update(self.table, member["id"], {"status": "expired", "updated_at": timestamp()})
            record_activity(
                tx,
                self.activity_type,
                "Membership expired",
                member["name"],
                details=f"Expired on {member['expiry_date']}",
                member_id=member["id"],
            )
            expired.append(member["id"])
        return expired

    async def check_in(self, member_id: str) -> Dict[str, Any]:
        """Record a visit for an active member.

        The check-in row, the visit counter increment and the activity
        entry are written in one transaction.  Raises
        ``InvalidStateError`` when the member is not ``active``.
        """
        with self.repository.transaction(immediate=True) as tx:
            result = self.check_in_member(tx, member_id)
        logger.info("Member %s checked in (visit %s)", member_id, result["member"]["total_visits"])
        return result

    async def renew(self, member_id: str, payload: Any) -> Dict[str, Any]:
        """Start a new membership period and reactivate the member."""
        renewal = self.parse(MemberRenew, payload)
        with self.repository.transaction(immediate=True) as tx:
            stored = self.renew_member(tx, member_id, renewal)
        logger.info("Member %s renewed until %s", member_id, stored["expiry_date"])
        return stored

    async def expiring_soon(self, days: int = 30) -> List[Dict[str, Any]]:
        """Active members whose expiry date is on or before ``today + days``."""
        if not MIN_EXPIRING_DAYS <= days <= MAX_EXPIRING_DAYS:
            raise ValidationError(
                "Invalid days parameter",
                details=[{"field": "days", "message": f"Must be between {MIN_EXPIRING_DAYS} and {MAX_EXPIRING_DAYS}"}],
            )
        cutoff = today() + timedelta(days=days)
        members = self.repository.find(self.table, {"status": "active"})
        expiring = [m for m in members if parse_date(m["expiry_date"]) <= cutoff]
        return sorted(expiring, key=lambda m: m["expiry_date"])

    async def stats(self, member_id: str) -> Dict[str, Any]:
        """Aggregate visits, sessions, invoices and membership timing for one member."""
        with self.repository.transaction() as tx:
            member = self.require(tx, self.table, member_id, self.label)
            sessions = tx.find("sessions", {"member_id": member_id})
            invoices = tx.find("invoices", {"member_id": member_id})
            recent = tx.find(
                "activities", {"member_id": member_id}, order_by="time", descending=True,
                limit=STATS_ACTIVITY_LIMIT,
            )

        sessions_by_status: Dict[str, int] = {}
        for session in sessions:
            sessions_by_status[session["status"]] = sessions_by_status.get(session["status"], 0) + 1

        invoices_by_status: Dict[str, int] = {}
        amounts: Dict[str, Decimal] = {"paid": Decimal("0"), "pending": Decimal("0"), "overdue": Decimal("0")}
        for invoice in invoices:
            invoices_by_status[invoice["status"]] = invoices_by_status.get(invoice["status"], 0) + 1
            amounts[invoice["status"]] = amounts.get(invoice["status"], Decimal("0")) + Decimal(invoice["total"])

        current_day = today()
        start: date = parse_date(member["start_date"])
        expiry: date = parse_date(member["expiry_date"])
        return {
            "member_id": member_id,
            "total_visits": member["total_visits"],
            "last_visit": member["last_visit"],
            "total_sessions": len(sessions),
            "completed_sessions": sessions_by_status.get("completed", 0),
            "sessions_by_status": sessions_by_status,
            "total_invoices": len(invoices),
            "paid_invoices": invoices_by_status.get("paid", 0),
            "invoices_by_status": invoices_by_status,
            "total_revenue": str(quantize_money(amounts["paid"])),
            "pending_amount": str(quantize_money(amounts["pending"])),
            "overdue_amount": str(quantize_money(amounts["overdue"])),
            "membership_days": (current_day - start).days,
            "days_until_expiry": (expiry - current_day).days,
            "recent_activity": recent,
        }

    async def expire_overdue(self, on: Optional[date] = None) -> List[str]:
        """Move active members past their expiry date to ``expired``.

        Idempotent: members already expired, or with a future expiry
        date, are left untouched.  Returns the ids that changed.
        """
        with self.repository.transaction(immediate=True) as tx:
            expired = self.expire_members(tx, on or today())
        if expired:
            logger.info("Expired %s memberships", len(expired))
        return expired

