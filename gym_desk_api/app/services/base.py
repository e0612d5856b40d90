"""
Generic collection service.

``CollectionService`` implements the create/list/get/update/delete
shape shared by every collection of the Record Store.  Subclasses set
the table, schemas and query capabilities as class attributes and
override the ``prepare_*`` hooks to enforce their own invariants
(uniqueness, derived fields, cascades).

All writes run inside a single repository transaction together with
the activity entry describing them, so a failed invariant leaves the
collection and the log unchanged.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type

import pydantic
from pydantic import BaseModel

from ..core.config import Settings, settings
from ..core.db import RepositoryTransaction, SQLiteRepository
from ..core.errors import ConflictError, NotFoundError, ValidationError, validation_error
from ..core.rules import utc_now
from ..schemas.common import Pagination
from .activity_service import record_activity

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class CollectionService:
    table: str = ""
    label: str = ""
    activity_type: str = "system"

    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    read_schema: Type[BaseModel]

    filter_fields: Tuple[str, ...] = ()
    search_columns: Tuple[str, ...] = ("name",)
    sort_fields: Tuple[str, ...] = ("created_at",)
    default_sort: str = "created_at"

    def __init__(self, repository: SQLiteRepository, config: Settings = settings) -> None:
        self.repository = repository
        self.config = config

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def new_id(self, tx: RepositoryTransaction) -> str:
        return uuid.uuid4().hex

    def prepare_create(self, tx: RepositoryTransaction, record: Dict[str, Any]) -> Dict[str, Any]:
        return record

    def prepare_update(
        self,
        tx: RepositoryTransaction,
        current: Dict[str, Any],
        record: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> Dict[str, Any]:
        return record

    def before_delete(self, tx: RepositoryTransaction, record: Dict[str, Any]) -> None:
        pass

    def after_write(
        self, tx: RepositoryTransaction, before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]
    ) -> None:
        pass

    def display_name(self, record: Mapping[str, Any]) -> str:
        return str(record.get("name") or record.get("id"))

    def activity_refs(self, record: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        return {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def parse(schema: Type[BaseModel], payload: Any) -> BaseModel:
        """Validate ``payload`` against ``schema`` raising the domain error."""
        if isinstance(payload, schema):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(exclude_unset=True)
        try:
            return schema.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise validation_error(exc) from exc

    def to_stored(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a record to its JSON-compatible storage form."""
        try:
            return self.read_schema.model_validate(dict(record)).model_dump(mode="json")
        except pydantic.ValidationError as exc:
            raise validation_error(exc) from exc

    def log(self, tx: RepositoryTransaction, verb: str, record: Mapping[str, Any], details: Optional[str] = None) -> None:
        record_activity(
            tx,
            self.activity_type,
            f"{self.label} {verb}",
            self.display_name(record),
            details=details,
            **self.activity_refs(record),
        )

    def require(self, tx: RepositoryTransaction, table: str, record_id: Optional[str], label: str) -> Dict[str, Any]:
        row = tx.get(table, record_id) if record_id else None
        if row is None:
            raise NotFoundError(f"{label} not found", details=[{"field": "id", "message": str(record_id)}])
        return row

    # ------------------------------------------------------------------
    # Transactional cores
    #
    # These run against any object offering the RepositoryTransaction
    # interface; the replica calls them with its in-memory transaction.
    # ------------------------------------------------------------------

    def create_record(
        self, tx: RepositoryTransaction, model: BaseModel, new_id: Optional[Callable[[Any], str]] = None
    ) -> Dict[str, Any]:
        data = model.model_dump()
        requested_id = data.pop("id", None)
        if requested_id:
            if tx.get(self.table, requested_id) is not None:
                raise ConflictError(f"{self.label} {requested_id} already exists")
            data["id"] = requested_id
        else:
            data["id"] = (new_id or self.new_id)(tx)
        data["created_at"] = data["updated_at"] = utc_now()
        stored = self.to_stored(self.prepare_create(tx, data))
        tx.insert(self.table, stored)
        self.after_write(tx, None, stored)
        self.log(tx, "created", stored)
        return stored

    def update_record(self, tx: RepositoryTransaction, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        current = tx.get(self.table, record_id)
        if current is None:
            raise NotFoundError(f"{self.label} not found")
        record = {**current, **changes, "id": record_id, "updated_at": utc_now()}
        stored = self.to_stored(self.prepare_update(tx, current, record, changes))
        tx.update(self.table, record_id, stored)
        self.after_write(tx, current, stored)
        self.log(tx, "updated", stored, details=self.describe_changes(changes))
        return stored

    def delete_record(self, tx: RepositoryTransaction, record_id: str) -> Dict[str, Any]:
        current = tx.get(self.table, record_id)
        if current is None:
            raise NotFoundError(f"{self.label} not found")
        self.before_delete(tx, current)
        tx.delete(self.table, record_id)
        self.after_write(tx, current, None)
        self.log(tx, "deleted", current)
        return current

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(self, payload: Any) -> Dict[str, Any]:
        """Validate, derive and insert a new record.

        A client-supplied ``id`` is honoured when unused; otherwise a new
        identifier is generated.  Raises ``ValidationError`` or
        ``ConflictError`` and writes nothing on failure.
        """
        model = self.parse(self.create_schema, payload)
        with self.repository.transaction(immediate=True) as tx:
            stored = self.create_record(tx, model)
        logger.info("%s %s created", self.label, stored["id"])
        return stored

    async def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_by: Optional[str] = None,
        order: str = "asc",
    ) -> Tuple[List[Dict[str, Any]], Pagination]:
        """Filter, search, sort and paginate the collection.

        Filters are an exact-match conjunction over ``filter_fields``;
        ``None`` values are ignored.  ``limit`` is capped at 100.
        """
        details = []
        filters = {key: value for key, value in (filters or {}).items() if value is not None}
        for key in filters:
            if key not in self.filter_fields:
                details.append({"field": key, "message": "Unknown filter"})
        sort_by = sort_by or self.default_sort
        if sort_by not in self.sort_fields:
            details.append({"field": "sort_by", "message": f"Must be one of: {', '.join(self.sort_fields)}"})
        order = (order or "asc").lower()
        if order not in ("asc", "desc"):
            details.append({"field": "order", "message": "Must be 'asc' or 'desc'"})
        if page < 1:
            details.append({"field": "page", "message": "Must be at least 1"})
        if limit < 1:
            details.append({"field": "limit", "message": "Must be at least 1"})
        if details:
            raise ValidationError("Invalid query parameters", details=details)
        limit = min(limit, MAX_PAGE_SIZE)
        rows, total = self.repository.query(
            self.table,
            filters=filters,
            search=search or None,
            search_columns=self.search_columns,
            sort_by=sort_by,
            order=order,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return rows, Pagination.build(page, limit, total)

    async def get(self, record_id: str) -> Dict[str, Any]:
        row = self.repository.get(self.table, record_id)
        if row is None:
            raise NotFoundError(f"{self.label} not found")
        return row

    async def all(self) -> List[Dict[str, Any]]:
        """Every record in insertion order (bulk read for replicas)."""
        return self.repository.find(self.table)

    async def update(self, record_id: str, payload: Any) -> Dict[str, Any]:
        """Merge a partial update, re-derive fields and re-stamp ``updated_at``."""
        changes = self.parse(self.update_schema, payload).model_dump(exclude_unset=True)
        with self.repository.transaction(immediate=True) as tx:
            stored = self.update_record(tx, record_id, changes)
        logger.info("%s %s updated", self.label, record_id)
        return stored

    async def delete(self, record_id: str) -> Dict[str, Any]:
        with self.repository.transaction(immediate=True) as tx:
            current = self.delete_record(tx, record_id)
        logger.info("%s %s deleted", self.label, record_id)
        return current

    @staticmethod
    def describe_changes(changes: Iterable[str]) -> Optional[str]:
        fields = sorted(changes)
        return "Changed: " + ", ".join(fields) if fields else None
