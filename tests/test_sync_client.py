"""Tests for the locally persisted replica and its startup reconciliation."""
import json
from datetime import date

import pytest

from gym_desk_api.app.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from gym_desk_sync import JSONFileStorage, MemoryStorage, RecordStoreAPI, ReplicaState, SyncClient
from gym_desk_sync.config import SyncSettings
from gym_desk_sync.replica import COLLECTIONS
from tests.factories import followup_payload, invoice_payload, member_payload, product_payload
from tests.fakes import FakeSession, envelope

BASE_URL = "http://store.test"


def offline_client(storage=None) -> SyncClient:
    client = SyncClient(storage or MemoryStorage())
    client.bootstrap()
    return client


def online_session(collections=None, pricing=None) -> FakeSession:
    routes = {("GET", "/health"): envelope({"status": "ok"})}
    for table in COLLECTIONS.values():
        routes[("GET", f"/api/v1/sync/{table}")] = envelope((collections or {}).get(table, []))
    routes[("GET", "/api/v1/settings/pricing")] = envelope(pricing or {"monthly_fee": "2100.00"})
    routes[("GET", "/api/v1/settings/terms")] = envelope({"text": "Remote terms"})
    return FakeSession(BASE_URL, routes)


def remote_member(**overrides):
    record = {
        "id": "m-remote",
        "name": "Remote Member",
        "email": "remote@test.com",
        "phone": "+91 99999 00000",
        "membership_type": "monthly",
        "start_date": "2024-01-01",
        "expiry_date": "2024-02-01",
        "status": "active",
        "total_visits": 4,
        "last_visit": None,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }
    record.update(overrides)
    return record


class TestLocalMutations:
    def test_add_member_applies_server_rules(self):
        client = offline_client()
        member = client.add_member(member_payload(start_date="2024-01-31"))
        assert member["expiry_date"] == "2024-02-29"
        assert member["total_visits"] == 0
        assert client.get_member(member["id"]) == member
        assert client.get_activities()[0]["action"] == "Member created"

    def test_duplicate_email_leaves_replica_unchanged(self):
        storage = MemoryStorage()
        client = offline_client(storage)
        client.add_member(member_payload(email="asha@test.com"))
        before = client.state.to_dict()
        saves = storage.saves

        with pytest.raises(ConflictError):
            client.add_member(member_payload(email="ASHA@test.com"))

        assert client.state.to_dict() == before
        assert storage.saves == saves

    def test_returned_records_are_copies(self):
        client = offline_client()
        member = client.add_member(member_payload())
        member["name"] = "Changed outside"
        client.get_members()[0]["name"] = "Changed again"
        assert client.get_member(member["id"])["name"] != "Changed outside"
        assert client.get_members()[0]["name"] != "Changed again"

    def test_invoice_totals_and_sequence(self):
        client = offline_client()
        member = client.add_member(member_payload())
        invoices = [client.add_invoice(invoice_payload(member["id"])) for _ in range(3)]
        assert [inv["id"] for inv in invoices] == ["#MP0001", "#MP0002", "#MP0003"]
        assert invoices[0]["subtotal"] == "999.00"
        assert invoices[0]["total"] == "1178.82"

    def test_invoice_sequence_survives_restart(self):
        storage = MemoryStorage()
        client = offline_client(storage)
        member = client.add_member(member_payload())
        for _ in range(3):
            client.add_invoice(invoice_payload(member["id"]))

        restarted = offline_client(storage)
        assert restarted.add_invoice(invoice_payload(member["id"]))["id"] == "#MP0004"

    def test_failed_invoice_does_not_consume_an_id(self):
        client = offline_client()
        member = client.add_member(member_payload())
        with pytest.raises(NotFoundError):
            client.add_invoice(invoice_payload("missing"))
        assert client.add_invoice(invoice_payload(member["id"]))["id"] == "#MP0001"

    def test_reserved_invoice_id(self):
        client = offline_client()
        member = client.add_member(member_payload())
        reserved = client.next_invoice_id()
        assert reserved == "#MP0001"
        assert client.add_invoice(invoice_payload(member["id"]))["id"] == "#MP0002"
        assert client.add_invoice(invoice_payload(member["id"], id=reserved))["id"] == reserved

    def test_check_in_rules(self):
        client = offline_client()
        pending = client.add_member(member_payload(status="pending"))
        with pytest.raises(InvalidStateError):
            client.check_in(pending["id"])
        assert client.get_member(pending["id"])["total_visits"] == 0

        active = client.add_member(member_payload())
        result = client.check_in(active["id"])
        assert result["member"]["total_visits"] == 1
        assert len(client.get_check_ins(member_id=active["id"])) == 1
        today = date.fromisoformat(result["check_in"]["date"])
        assert len(client.get_check_ins(on=today)) == 1

    def test_renew_membership(self):
        client = offline_client()
        member = client.add_member(member_payload(status="expired"))
        renewed = client.renew_membership(member["id"], "monthly", "2024-01-31")
        assert renewed["status"] == "active"
        assert renewed["expiry_date"] == "2024-02-29"

    def test_auto_expire_is_idempotent(self):
        client = offline_client()
        lapsed = client.add_member(member_payload(start_date="2020-01-01", expiry_date="2020-02-01"))
        client.add_member(member_payload())

        assert client.auto_expire_members() == [lapsed["id"]]
        snapshot = client.state.to_dict()
        assert client.auto_expire_members() == []
        assert client.state.to_dict() == snapshot

    def test_delete_member_cascades(self):
        client = offline_client()
        member = client.add_member(member_payload())
        other = client.add_member(member_payload())
        client.add_invoice(invoice_payload(member["id"]))
        client.add_invoice(invoice_payload(other["id"]))
        client.add_follow_up(followup_payload(member_id=member["id"]))

        client.delete_member(member["id"])

        assert [inv["member_id"] for inv in client.get_invoices()] == [other["id"]]
        assert client.records("follow_ups") == []
        with pytest.raises(NotFoundError):
            client.get_member(member["id"])

    def test_product_sale(self):
        client = offline_client()
        product = client.add_product(product_payload(quantity_in_stock=2))
        assert client.record_sale(product["id"], 2)["quantity_in_stock"] == 0
        with pytest.raises(InvalidStateError):
            client.record_sale(product["id"], 1)

    def test_settings(self):
        client = offline_client()
        assert client.get_pricing()["monthly_fee"] == "1999.00"
        assert client.set_pricing({"monthly_fee": "2500"})["monthly_fee"] == "2500.00"
        with pytest.raises(ValidationError):
            client.set_pricing({"monthly_fee": "-5"})
        assert client.set_terms("House rules") == "House rules"
        assert client.get_terms() == "House rules"

    def test_clear_all_data_keeps_settings(self):
        client = offline_client()
        member = client.add_member(member_payload())
        client.add_invoice(invoice_payload(member["id"]))
        client.set_terms("Keep me")

        client.clear_all_data()

        assert client.state.is_empty()
        assert client.get_terms() == "Keep me"
        assert client.state.last_invoice_sequence == 1


class TestExportImport:
    def test_round_trip_reproduces_replica(self):
        client = offline_client()
        member = client.add_member(member_payload())
        client.add_invoice(invoice_payload(member["id"]))
        client.check_in(member["id"])
        client.set_pricing({"monthly_fee": "2222"})
        exported = client.export_data()

        other = offline_client()
        other.import_data(exported)
        assert other.state == client.state

    def test_missing_collections_default_to_empty(self):
        client = offline_client()
        client.add_member(member_payload())
        client.import_data({"members": [remote_member()]})
        assert [m["id"] for m in client.get_members()] == ["m-remote"]
        assert client.get_invoices() == []
        assert client.get_pricing()["monthly_fee"] == "1999.00"

    def test_legacy_keys_are_accepted(self):
        client = offline_client()
        client.import_data({"members": [remote_member()], "followUps": [], "termsAndConditions": "Old terms"})
        assert client.get_terms() == "Old terms"

    def test_invalid_payloads(self):
        client = offline_client()
        with pytest.raises(ValidationError):
            client.import_data("{not json")
        with pytest.raises(ValidationError):
            client.import_data(json.dumps([1, 2]))
        with pytest.raises(ValidationError):
            client.import_data({"members": "nope"})

    def test_imported_invoices_seed_the_sequence(self):
        client = offline_client()
        member = remote_member()
        invoice = {"id": "#MP0041", "member_id": member["id"]}
        client.import_data({"members": [member], "invoices": [invoice]})
        assert client.next_invoice_id() == "#MP0042"


class TestBootstrap:
    def test_offline_start_with_empty_replica(self):
        storage = MemoryStorage()
        client = SyncClient(storage)
        state = client.bootstrap()
        assert state.is_empty()
        assert client.remote_available is False
        assert storage.data is not None

    def test_empty_replica_pulls_from_remote(self):
        session = online_session({"members": [remote_member()], "activities": []})
        remote = RecordStoreAPI(base_url=BASE_URL, session=session)
        client = SyncClient(MemoryStorage(), remote=remote)

        client.bootstrap()

        assert client.remote_available is True
        assert [m["id"] for m in client.get_members()] == ["m-remote"]
        assert client.get_pricing()["monthly_fee"] == "2100.00"
        assert client.get_terms() == "Remote terms"

    def test_remote_without_data_leaves_empty_shell(self):
        remote = RecordStoreAPI(base_url=BASE_URL, session=online_session())
        client = SyncClient(MemoryStorage(), remote=remote)
        assert client.bootstrap().is_empty()
        assert client.get_pricing()["monthly_fee"] == "1999.00"

    def test_non_empty_replica_is_not_replaced(self):
        storage = MemoryStorage()
        local = offline_client(storage)
        local_member = local.add_member(member_payload())

        session = online_session({"members": [remote_member()]})
        client = SyncClient(storage, remote=RecordStoreAPI(base_url=BASE_URL, session=session))
        client.bootstrap()

        assert [m["id"] for m in client.get_members()] == [local_member["id"]]
        assert not any(call["path"].startswith("/api/v1/sync") for call in session.calls)

    def test_failed_pull_keeps_local_data(self):
        session = online_session({"members": [remote_member()]})
        del session.routes[("GET", "/api/v1/sync/invoices")]
        client = SyncClient(MemoryStorage(), remote=RecordStoreAPI(base_url=BASE_URL, session=session))

        state = client.bootstrap()

        assert state.is_empty()
        assert client.remote_available is True

    def test_unreachable_remote_is_offline(self):
        client = SyncClient(MemoryStorage(), remote=RecordStoreAPI(base_url=BASE_URL, session=FakeSession(BASE_URL)))
        client.bootstrap()
        assert client.remote_available is False
        client.add_member(member_payload())
        assert len(client.get_members()) == 1

    def test_bootstrap_runs_once(self):
        session = online_session()
        client = SyncClient(MemoryStorage(), remote=RecordStoreAPI(base_url=BASE_URL, session=session))
        client.bootstrap()
        calls = len(session.calls)
        client.bootstrap()
        assert len(session.calls) == calls

    def test_sync_now_replaces_wholesale(self):
        storage = MemoryStorage()
        local = offline_client(storage)
        local.add_member(member_payload())

        session = online_session({"members": [remote_member()]})
        client = SyncClient(storage, remote=RecordStoreAPI(base_url=BASE_URL, session=session))
        client.bootstrap()

        assert client.sync_now() is True
        assert [m["id"] for m in client.get_members()] == ["m-remote"]
        assert storage.data["members"][0]["id"] == "m-remote"

    def test_sync_now_without_remote(self):
        client = offline_client()
        assert client.sync_now() is False


class TestPush:
    def test_mutations_are_pushed_when_online(self):
        session = online_session()
        session.routes[("POST", "/api/v1/members")] = envelope({}, 201)
        client = SyncClient(MemoryStorage(), remote=RecordStoreAPI(base_url=BASE_URL, session=session))
        client.bootstrap()

        member = client.add_member(member_payload())
        client.check_in(member["id"])

        pushed = [(call["method"], call["path"]) for call in session.calls if call["method"] != "GET"]
        assert pushed == [
            ("POST", "/api/v1/members"),
            ("POST", f"/api/v1/members/{member['id']}/checkin"),
        ]
        assert session.calls[-2]["json"]["id"] == member["id"]

    def test_push_failure_keeps_local_change(self):
        session = online_session()
        client = SyncClient(MemoryStorage(), remote=RecordStoreAPI(base_url=BASE_URL, session=session))
        client.bootstrap()
        member = client.add_member(member_payload())
        assert client.get_member(member["id"]) == member

    def test_push_disabled(self):
        session = online_session()
        settings = SyncSettings(push=False)
        client = SyncClient(
            MemoryStorage(), remote=RecordStoreAPI(base_url=BASE_URL, session=session), settings=settings
        )
        client.bootstrap()
        client.add_member(member_payload())
        assert all(call["method"] == "GET" for call in session.calls)


def test_json_file_storage_round_trip(tmp_path):
    path = tmp_path / "replica" / "state.json"
    client = offline_client(JSONFileStorage(str(path)))
    member = client.add_member(member_payload())

    reloaded = SyncClient(JSONFileStorage(str(path)))
    assert reloaded.get_member(member["id"]) == member
    assert isinstance(ReplicaState.from_dict(json.loads(path.read_text())), ReplicaState)
