"""
Business logic for follow-ups.

A follow-up points at exactly one member or visitor; the subject's
name is copied into ``subject_name``.  ``completed_at`` is stamped when
the status becomes ``completed`` and cleared when it leaves it.
"""

from ..core.rules import apply_completion
from ..schemas.followup import FollowUpCreate, FollowUpRead, FollowUpUpdate
from .base import CollectionService


class FollowUpService(CollectionService):
    table = "followups"
    label = "Follow-up"
    activity_type = "followup"

    create_schema = FollowUpCreate
    update_schema = FollowUpUpdate
    read_schema = FollowUpRead

    filter_fields = ("status", "type", "category", "priority", "member_id", "visitor_id")
    search_columns = ("subject_name", "notes")
    sort_fields = ("due_date", "created_at", "priority", "status")
    default_sort = "due_date"

    def display_name(self, record):
        return record.get("subject_name") or record["id"]

    def activity_refs(self, record):
        return {"member_id": record.get("member_id")}

    def resolve_subject(self, tx, record):
        if record.get("member_id"):
            subject = self.require(tx, "members", record["member_id"], "Member")
        else:
            subject = self.require(tx, "visitors", record.get("visitor_id"), "Visitor")
        record["subject_name"] = subject["name"]
        return record

    def prepare_create(self, tx, record):
        self.resolve_subject(tx, record)
        return apply_completion(record)

    def prepare_update(self, tx, current, record, changes):
        # Moving to the other kind of subject clears the previous reference.
        if changes.get("member_id") and "visitor_id" not in changes:
            record["visitor_id"] = None
        elif changes.get("visitor_id") and "member_id" not in changes:
            record["member_id"] = None
        if "member_id" in changes or "visitor_id" in changes:
            if bool(record.get("member_id")) != bool(record.get("visitor_id")):
                self.resolve_subject(tx, record)
        return apply_completion(record)
