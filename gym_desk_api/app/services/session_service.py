"""
Business logic for training sessions.

Each write recomputes the counters of the trainers involved:
``total_sessions`` is the number of sessions assigned to the trainer
and ``current_sessions`` the number currently ``in_progress``.
"""

import logging
from typing import Optional

from ..schemas.session import SessionCreate, SessionRead, SessionUpdate
from .base import CollectionService

logger = logging.getLogger(__name__)


def recount_trainer_sessions(tx, trainer_id: Optional[str]) -> None:
    if not trainer_id or tx.get("trainers", trainer_id) is None:
        return
    sessions = tx.find("sessions", {"trainer_id": trainer_id})
    tx.update(
        "trainers",
        trainer_id,
        {
            "total_sessions": len(sessions),
            "current_sessions": sum(1 for s in sessions if s["status"] == "in_progress"),
        },
    )


class SessionService(CollectionService):
    table = "sessions"
    label = "Session"
    activity_type = "session"

    create_schema = SessionCreate
    update_schema = SessionUpdate
    read_schema = SessionRead

    filter_fields = ("trainer_id", "member_id", "status", "type")
    search_columns = ("trainer_name", "member_name", "notes")
    sort_fields = ("start_time", "created_at", "status")
    default_sort = "start_time"

    def display_name(self, record):
        names = [record.get("trainer_name"), record.get("member_name")]
        return " / ".join(name for name in names if name) or record["id"]

    def activity_refs(self, record):
        return {"member_id": record.get("member_id")}

    def resolve_names(self, tx, record):
        trainer = self.require(tx, "trainers", record["trainer_id"], "Trainer")
        record["trainer_name"] = trainer["name"]
        if record.get("member_id"):
            member = self.require(tx, "members", record["member_id"], "Member")
            record["member_name"] = member["name"]
        else:
            record["member_name"] = None
        return record

    def prepare_create(self, tx, record):
        return self.resolve_names(tx, record)

    def prepare_update(self, tx, current, record, changes):
        if "trainer_id" in changes or "member_id" in changes:
            self.resolve_names(tx, record)
        return record

    def after_write(self, tx, before, after):
        trainer_ids = {row["trainer_id"] for row in (before, after) if row}
        for trainer_id in trainer_ids:
            recount_trainer_sessions(tx, trainer_id)
