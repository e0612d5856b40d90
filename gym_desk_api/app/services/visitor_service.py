"""Business logic for walk-in visitors."""

from ..schemas.visitor import VisitorCreate, VisitorRead, VisitorUpdate
from .base import CollectionService


class VisitorService(CollectionService):
    table = "visitors"
    label = "Visitor"
    activity_type = "visitor"

    create_schema = VisitorCreate
    update_schema = VisitorUpdate
    read_schema = VisitorRead

    filter_fields = ("status", "purpose", "visit_date", "host_member")
    search_columns = ("name", "email", "phone")
    sort_fields = ("name", "visit_date", "created_at")
    default_sort = "visit_date"
