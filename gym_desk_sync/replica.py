"""
Locally persisted replica of the Record Store.

``SyncClient`` owns a :class:`ReplicaState` and a persistence adapter.
Local mutations run the Record Store's own service rules (uniqueness,
expiry dates, invoice totals, completion stamps, trainer counters,
cascades) against a :class:`ReplicaTransaction`, an in-memory object
offering the same interface as the SQLite transaction.  A mutation
works on a copy of the state; the copy replaces the live state and is
persisted only when every rule passed.

Startup reconciliation (:meth:`SyncClient.bootstrap`) runs once per
session:

1. the remote capability check is consulted once;
2. if the core collections are all empty and the remote is available,
   every collection is pulled and imported wholesale when any of them
   has data;
3. if the pull fails or yields nothing, the replica starts as an empty
   shell;
4. a replica that already holds data is used as is.

A stale but non-empty replica is refreshed only by :meth:`SyncClient.sync_now`.
"""

from __future__ import annotations

import copy
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from gym_desk_api.app.core.config import Settings, settings as store_settings
from gym_desk_api.app.core.errors import NotFoundError, UnavailableError, ValidationError
from gym_desk_api.app.core.rules import timestamp, today
from gym_desk_api.app.core.sequence import SequentialIdAllocator
from gym_desk_api.app.schemas.invoice import InvoiceStatusUpdate
from gym_desk_api.app.schemas.member import MemberRenew
from gym_desk_api.app.schemas.product import ProductSale
from gym_desk_api.app.schemas.settings import DEFAULT_TERMS, Pricing, Terms
from gym_desk_api.app.services.base import CollectionService
from gym_desk_api.app.services.followup_service import FollowUpService
from gym_desk_api.app.services.invoice_service import InvoiceService
from gym_desk_api.app.services.member_service import MemberService
from gym_desk_api.app.services.product_service import ProductService
from gym_desk_api.app.services.session_service import SessionService
from gym_desk_api.app.services.trainer_service import TrainerService
from gym_desk_api.app.services.visitor_service import VisitorService

from .config import SyncSettings, sync_settings
from .remote import RecordStoreAPI

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1

# Replica collection name -> Record Store collection (table) name.
COLLECTIONS: Dict[str, str] = {
    "members": "members",
    "trainers": "trainers",
    "visitors": "visitors",
    "invoices": "invoices",
    "follow_ups": "followups",
    "activities": "activities",
    "check_ins": "checkins",
    "sessions": "sessions",
    "products": "products",
}
TABLE_KEYS: Dict[str, str] = {table: key for key, table in COLLECTIONS.items()}

# Emptiness of these decides whether startup pulls from the Record Store.
CORE_COLLECTIONS = ("members", "trainers", "visitors", "invoices", "follow_ups", "activities")

# Keys used by older exports.
LEGACY_KEYS = {
    "followUps": "follow_ups",
    "checkIns": "check_ins",
    "proteins": "products",
    "termsAndConditions": "terms_and_conditions",
    "lastInvoiceSequence": "last_invoice_sequence",
}

SERVICES = {
    "members": MemberService,
    "trainers": TrainerService,
    "visitors": VisitorService,
    "invoices": InvoiceService,
    "follow_ups": FollowUpService,
    "sessions": SessionService,
    "products": ProductService,
}


def _default_pricing() -> Dict[str, Any]:
    return Pricing().model_dump(mode="json")


@dataclass
class ReplicaState:
    """Every collection plus business settings, as JSON-compatible values."""

    members: List[Dict[str, Any]] = field(default_factory=list)
    trainers: List[Dict[str, Any]] = field(default_factory=list)
    visitors: List[Dict[str, Any]] = field(default_factory=list)
    invoices: List[Dict[str, Any]] = field(default_factory=list)
    follow_ups: List[Dict[str, Any]] = field(default_factory=list)
    activities: List[Dict[str, Any]] = field(default_factory=list)
    check_ins: List[Dict[str, Any]] = field(default_factory=list)
    sessions: List[Dict[str, Any]] = field(default_factory=list)
    products: List[Dict[str, Any]] = field(default_factory=list)
    pricing: Dict[str, Any] = field(default_factory=_default_pricing)
    terms_and_conditions: str = DEFAULT_TERMS
    last_invoice_sequence: int = 0

    def is_empty(self) -> bool:
        return all(not getattr(self, key) for key in CORE_COLLECTIONS)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReplicaState":
        """Build a state from an export payload.

        Missing collections default to empty and missing settings to
        their defaults; unknown keys are ignored.
        """
        data = {LEGACY_KEYS.get(key, key): value for key, value in data.items()}
        state = cls()
        for key in COLLECTIONS:
            records = data.get(key)
            if records is None:
                continue
            if not isinstance(records, list):
                raise ValidationError(
                    "Invalid import payload",
                    details=[{"field": key, "message": "Must be a list of records"}],
                )
            setattr(state, key, copy.deepcopy(records))
        if data.get("pricing"):
            state.pricing = {**_default_pricing(), **copy.deepcopy(data["pricing"])}
        if data.get("terms_and_conditions") is not None:
            state.terms_and_conditions = data["terms_and_conditions"]
        state.last_invoice_sequence = int(data.get("last_invoice_sequence") or 0)
        return state


class ReplicaTransaction:
    """In-memory counterpart of ``RepositoryTransaction``.

    Works on a private copy of the state; rows handed out are copies so
    callers cannot change the state behind its back.
    """

    def __init__(self, state: ReplicaState) -> None:
        self.state = state

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        try:
            return getattr(self.state, TABLE_KEYS[table])
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    def _row(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        for row in self._rows(table):
            if row.get("id") == record_id:
                return row
        return None

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        row = self._row(table, record_id)
        return copy.deepcopy(row) if row is not None else None

    def find(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        conditions = {key: value for key, value in (where or {}).items() if value is not None}
        rows = [row for row in self._rows(table) if all(row.get(k) == v for k, v in conditions.items())]
        if order_by:
            if descending:
                rows.reverse()
            rows.sort(key=lambda row: (row.get(order_by) is not None, row.get(order_by)), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def count(self, table: str, where: Optional[Mapping[str, Any]] = None) -> int:
        return len(self.find(table, where))

    def insert(self, table: str, record: Mapping[str, Any]) -> None:
        self._rows(table).append(copy.deepcopy(dict(record)))

    def update(self, table: str, record_id: str, changes: Mapping[str, Any]) -> None:
        row = self._row(table, record_id)
        if row is not None:
            row.update(copy.deepcopy(dict(changes)))

    def increment(
        self, table: str, record_id: str, column: str, amount: int = 1,
        changes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        row = self._row(table, record_id)
        if row is not None:
            row[column] = (row.get(column) or 0) + amount
            row.update(copy.deepcopy(dict(changes or {})))

    def delete(self, table: str, record_id: str) -> bool:
        return self.delete_where(table, "id", record_id) > 0

    def delete_where(self, table: str, column: str, value: Any) -> int:
        rows = self._rows(table)
        kept = [row for row in rows if row.get(column) != value]
        removed = len(rows) - len(kept)
        rows[:] = kept
        return removed

    def clear(self, table: str) -> int:
        rows = self._rows(table)
        removed = len(rows)
        rows.clear()
        return removed


class SyncClient:
    """Replica service object: getters, mutators, export/import and sync.

    Mutators return a copy of the affected record.  Failures raise the
    same errors as the Record Store (``ValidationError``,
    ``ConflictError``, ``NotFoundError``, ``InvalidStateError``) and
    leave the replica unchanged.  Remote problems are never raised.
    """

    def __init__(
        self,
        storage,
        remote: Optional[RecordStoreAPI] = None,
        settings: Optional[SyncSettings] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.storage = storage
        self.remote = remote
        self.settings = settings or sync_settings
        self.config = config or store_settings
        self.state = ReplicaState.from_dict(storage.load() or {})
        self.remote_available = False
        self._bootstrapped = False
        self._services: Dict[str, CollectionService] = {
            key: service_cls(None, self.config) for key, service_cls in SERVICES.items()
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        self.storage.save(self.state.to_dict())

    def _replace(self, payload: Mapping[str, Any]) -> None:
        self.state = ReplicaState.from_dict(payload)
        self._persist()

    @contextmanager
    def _transaction(self) -> Iterator[ReplicaTransaction]:
        working = ReplicaState.from_dict(self.state.to_dict())
        yield ReplicaTransaction(working)
        self.state = working
        self._persist()

    def _push(self, description: str, call: Callable[[RecordStoreAPI], Any]) -> None:
        """Replay a mutation on the Record Store; failures are logged and ignored."""
        if self.remote is None or not self.remote_available or not self.settings.push:
            return
        _, error = call(self.remote)
        if error:
            logger.warning("Push of %s failed, keeping local change: %s", description, error.get("message"))

    def _service(self, collection: str) -> CollectionService:
        try:
            return self._services[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection: {collection}") from None

    def _next_invoice_id(self, tx: ReplicaTransaction) -> str:
        state = tx.state
        allocator = SequentialIdAllocator(
            lambda: [invoice["id"] for invoice in state.invoices],
            last_sequence=state.last_invoice_sequence,
        )
        invoice_id = allocator.next()
        while tx.get("invoices", invoice_id) is not None:
            invoice_id = allocator.next()
        state.last_invoice_sequence = allocator.last_sequence
        return invoice_id

    def _add(self, collection: str, payload: Any) -> Dict[str, Any]:
        service = self._service(collection)
        model = service.parse(service.create_schema, payload)
        new_id = self._next_invoice_id if collection == "invoices" else None
        with self._transaction() as tx:
            record = service.create_record(tx, model, new_id=new_id)
        self._push(f"new {service.label.lower()}", lambda api: api.push_create(service.table, record))
        return copy.deepcopy(record)

    def _update(self, collection: str, record_id: str, payload: Any) -> Dict[str, Any]:
        service = self._service(collection)
        update = service.parse(service.update_schema, payload)
        changes = update.model_dump(exclude_unset=True)
        with self._transaction() as tx:
            record = service.update_record(tx, record_id, changes)
        body = update.model_dump(mode="json", exclude_unset=True)
        self._push(f"{service.label.lower()} update", lambda api: api.push_update(service.table, record_id, body))
        return copy.deepcopy(record)

    def _delete(self, collection: str, record_id: str) -> Dict[str, Any]:
        service = self._service(collection)
        with self._transaction() as tx:
            record = service.delete_record(tx, record_id)
        self._push(f"{service.label.lower()} delete", lambda api: api.push_delete(service.table, record_id))
        return record

    # ------------------------------------------------------------------
    # Startup and synchronization
    # ------------------------------------------------------------------

    def bootstrap(self) -> ReplicaState:
        """Run the startup protocol once per session and return the state."""
        if self._bootstrapped:
            return self.state
        self._bootstrapped = True
        self.remote_available = self.remote is not None and self.remote.is_remote_available()
        logger.info("Record Store %s", "available" if self.remote_available else "unavailable, working offline")

        if not self.state.is_empty():
            logger.info("Using local replica with %s members", len(self.state.members))
            return self.state

        if self.remote_available:
            try:
                if self._pull():
                    return self.state
            except UnavailableError as exc:
                logger.warning("Initial pull failed, starting from local data: %s", exc.message)

        logger.info("Starting with an empty replica")
        self._persist()
        return self.state

    def _pull(self) -> bool:
        """Pull every collection and import it wholesale if any has data."""
        pulled = self.remote.pull_all(COLLECTIONS.values())
        if not any(pulled.values()):
            logger.info("Record Store has no data to import")
            return False
        payload: Dict[str, Any] = {key: pulled[table] for key, table in COLLECTIONS.items()}
        remote_settings, error = self.remote.fetch_settings()
        if error:
            remote_settings = {"pricing": self.state.pricing, "terms_and_conditions": self.state.terms_and_conditions}
        payload.update(remote_settings)
        payload["last_invoice_sequence"] = self.state.last_invoice_sequence
        self._replace(payload)
        logger.info(
            "Imported %s from the Record Store",
            ", ".join(f"{len(records)} {key}" for key, records in payload.items() if isinstance(records, list)),
        )
        return True

    def sync_now(self) -> bool:
        """Replace the replica with the Record Store's data.

        Returns True when the replica was replaced.  Local changes that
        never reached the server are discarded.  When the Record Store
        is unreachable or empty the replica is left untouched.
        """
        if self.remote is None:
            logger.warning("No Record Store configured, nothing to sync")
            return False
        try:
            replaced = self._pull()
        except UnavailableError as exc:
            logger.warning("Sync failed, keeping local replica: %s", exc.message)
            return False
        self.remote_available = True
        return replaced

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    def records(self, collection: str) -> List[Dict[str, Any]]:
        if collection not in COLLECTIONS:
            raise ValidationError(f"Unknown collection: {collection}")
        return copy.deepcopy(getattr(self.state, collection))

    def get_record(self, collection: str, record_id: str) -> Dict[str, Any]:
        table = COLLECTIONS.get(collection)
        if table is None:
            raise ValidationError(f"Unknown collection: {collection}")
        record = ReplicaTransaction(self.state).get(table, record_id)
        if record is None:
            raise NotFoundError(f"{collection} record {record_id} not found")
        return record

    def get_members(self) -> List[Dict[str, Any]]:
        return self.records("members")

    def get_member(self, member_id: str) -> Dict[str, Any]:
        return self.get_record("members", member_id)

    def get_invoices(self) -> List[Dict[str, Any]]:
        return self.records("invoices")

    def get_invoice(self, invoice_id: str) -> Dict[str, Any]:
        return self.get_record("invoices", invoice_id)

    def get_activities(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Activities, newest first."""
        return ReplicaTransaction(self.state).find("activities", order_by="time", descending=True, limit=limit)

    def get_check_ins(self, on: Optional[date] = None, member_id: Optional[str] = None) -> List[Dict[str, Any]]:
        where = {"date": on.isoformat() if on else None, "member_id": member_id}
        return ReplicaTransaction(self.state).find("checkins", where, order_by="check_in_time", descending=True)

    def get_pricing(self) -> Dict[str, Any]:
        return copy.deepcopy(self.state.pricing)

    def get_terms(self) -> str:
        return self.state.terms_and_conditions

    def next_invoice_id(self) -> str:
        """Reserve and return the next ``#MP`` invoice id."""
        with self._transaction() as tx:
            return self._next_invoice_id(tx)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def add_member(self, payload: Any) -> Dict[str, Any]:
        return self._add("members", payload)

    def update_member(self, member_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("members", member_id, changes)

    def delete_member(self, member_id: str) -> Dict[str, Any]:
        """Delete a member together with their invoices and follow-ups."""
        return self._delete("members", member_id)

    def add_invoice(self, payload: Any) -> Dict[str, Any]:
        return self._add("invoices", payload)

    def update_invoice(self, invoice_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("invoices", invoice_id, changes)

    def update_invoice_status(self, invoice_id: str, status: str) -> Dict[str, Any]:
        change = CollectionService.parse(InvoiceStatusUpdate, {"status": status})
        service = self._service("invoices")
        with self._transaction() as tx:
            record = service.update_record(tx, invoice_id, {"status": change.status})
        self._push(
            "invoice status",
            lambda api: api.push_action("invoices", invoice_id, "status", {"status": change.status}, method="PUT"),
        )
        return copy.deepcopy(record)

    def delete_invoice(self, invoice_id: str) -> Dict[str, Any]:
        return self._delete("invoices", invoice_id)

    def add_trainer(self, payload: Any) -> Dict[str, Any]:
        return self._add("trainers", payload)

    def update_trainer(self, trainer_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("trainers", trainer_id, changes)

    def delete_trainer(self, trainer_id: str) -> Dict[str, Any]:
        return self._delete("trainers", trainer_id)

    def add_visitor(self, payload: Any) -> Dict[str, Any]:
        return self._add("visitors", payload)

    def update_visitor(self, visitor_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("visitors", visitor_id, changes)

    def delete_visitor(self, visitor_id: str) -> Dict[str, Any]:
        return self._delete("visitors", visitor_id)

    def add_follow_up(self, payload: Any) -> Dict[str, Any]:
        return self._add("follow_ups", payload)

    def update_follow_up(self, followup_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("follow_ups", followup_id, changes)

    def delete_follow_up(self, followup_id: str) -> Dict[str, Any]:
        return self._delete("follow_ups", followup_id)

    def add_session(self, payload: Any) -> Dict[str, Any]:
        return self._add("sessions", payload)

    def update_session(self, session_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("sessions", session_id, changes)

    def delete_session(self, session_id: str) -> Dict[str, Any]:
        return self._delete("sessions", session_id)

    def add_product(self, payload: Any) -> Dict[str, Any]:
        return self._add("products", payload)

    def update_product(self, product_id: str, changes: Any) -> Dict[str, Any]:
        return self._update("products", product_id, changes)

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        return self._delete("products", product_id)

    def check_in(self, member_id: str) -> Dict[str, Any]:
        """Record a visit; only ``active`` members may check in."""
        service = self._service("members")
        with self._transaction() as tx:
            result = service.check_in_member(tx, member_id)
        self._push("check-in", lambda api: api.push_action("members", member_id, "checkin"))
        return copy.deepcopy(result)

    def renew_membership(
        self, member_id: str, membership_type: str, start_date: Optional[Union[date, str]] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"membership_type": membership_type}
        if start_date is not None:
            body["start_date"] = start_date
        renewal = CollectionService.parse(MemberRenew, body)
        service = self._service("members")
        with self._transaction() as tx:
            record = service.renew_member(tx, member_id, renewal)
        push_body = renewal.model_dump(mode="json")
        self._push("renewal", lambda api: api.push_action("members", member_id, "renew", push_body))
        return copy.deepcopy(record)

    def record_sale(self, product_id: str, units: int) -> Dict[str, Any]:
        sale = CollectionService.parse(ProductSale, {"units": units})
        service = self._service("products")
        with self._transaction() as tx:
            record = service.sell(tx, product_id, sale)
        self._push("sale", lambda api: api.push_action("products", product_id, "sale", {"units": sale.units}))
        return copy.deepcopy(record)

    def auto_expire_members(self, on: Optional[date] = None) -> List[str]:
        """Expire active members whose expiry date has passed.

        Idempotent; returns the ids that changed on this call.  The
        Record Store runs its own sweep, so nothing is pushed.
        """
        service = self._service("members")
        with self._transaction() as tx:
            expired = service.expire_members(tx, on or today())
        if expired:
            logger.info("Expired %s memberships locally", len(expired))
        return expired

    def set_pricing(self, payload: Any) -> Dict[str, Any]:
        pricing = CollectionService.parse(Pricing, payload).model_dump(mode="json")
        self.state.pricing = pricing
        self._persist()
        self._push("pricing", lambda api: api.push_settings("pricing", pricing))
        return copy.deepcopy(pricing)

    def set_terms(self, text: str) -> str:
        terms = CollectionService.parse(Terms, {"text": text})
        self.state.terms_and_conditions = terms.text
        self._persist()
        self._push("terms", lambda api: api.push_settings("terms", {"text": terms.text}))
        return terms.text

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_data(self) -> str:
        """Serialize every collection and the settings to a JSON document."""
        payload = {"version": EXPORT_VERSION, "exported_at": timestamp(), **self.state.to_dict()}
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def import_data(self, payload: Union[str, Mapping[str, Any]]) -> ReplicaState:
        """Replace the whole replica from an export; missing collections become empty."""
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as exc:
                raise ValidationError("Import payload is not valid JSON", details=[{"field": "payload", "message": str(exc)}]) from exc
        if not isinstance(payload, Mapping):
            raise ValidationError("Import payload must be a JSON object")
        self._replace(payload)
        logger.info("Imported replica with %s members", len(self.state.members))
        return self.state

    def clear_all_data(self) -> None:
        """Empty every collection; settings and the invoice counter are kept."""
        self.state = ReplicaState(
            pricing=self.state.pricing,
            terms_and_conditions=self.state.terms_and_conditions,
            last_invoice_sequence=self.state.last_invoice_sequence,
        )
        self._persist()
        logger.info("Cleared all replica data")
