"""
Business logic for trainers.

Session counters are not writable through this service; they are kept
in sync by ``SessionService`` whenever a session changes.
"""

from ..schemas.trainer import TrainerCreate, TrainerRead, TrainerUpdate
from .base import CollectionService


class TrainerService(CollectionService):
    table = "trainers"
    label = "Trainer"
    activity_type = "trainer"

    create_schema = TrainerCreate
    update_schema = TrainerUpdate
    read_schema = TrainerRead

    filter_fields = ("status", "specialization")
    search_columns = ("name", "email", "phone")
    sort_fields = ("name", "created_at", "join_date", "total_sessions", "current_sessions")
    default_sort = "name"

    def prepare_create(self, tx, record):
        record["current_sessions"] = 0
        record["total_sessions"] = 0
        return record
