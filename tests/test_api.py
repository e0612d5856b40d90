"""HTTP tests for the Record Store API, run in-process through ASGITransport."""
from urllib.parse import quote

import pytest

from tests.factories import invoice_payload, member_payload, product_payload, trainer_payload


@pytest.mark.asyncio
async def test_health_is_public(anonymous_client):
    response = await anonymous_client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(anonymous_client):
    response = await anonymous_client.get("/api/v1/members")
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "UNAUTHORIZED", "message": "Access token required"},
    }


@pytest.mark.asyncio
async def test_short_token_is_rejected(anonymous_client):
    response = await anonymous_client.get("/api/v1/members", headers={"Authorization": "Bearer short"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid token"


class TestMembersAPI:
    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        response = await client.post("/api/v1/members", json=member_payload(name="Asha"))
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Member created successfully"
        member_id = body["data"]["id"]

        detail = (await client.get(f"/api/v1/members/{member_id}")).json()["data"]
        assert detail["name"] == "Asha"
        assert detail["invoices"] == []
        assert detail["recent_activities"][0]["action"] == "Member created"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, client):
        await client.post("/api/v1/members", json=member_payload(email="dup@test.com"))
        response = await client.post("/api/v1/members", json=member_payload(email="dup@test.com"))
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

        listing = (await client.get("/api/v1/members")).json()
        assert listing["pagination"]["total_count"] == 1

    @pytest.mark.asyncio
    async def test_invalid_body_is_validation_error(self, client):
        response = await client.post("/api/v1/members", json={"name": "No Contact"})
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = {detail["field"] for detail in error["details"]}
        assert {"email", "phone", "membership_type"} <= fields

    @pytest.mark.asyncio
    async def test_unknown_member_is_not_found(self, client):
        response = await client.get("/api/v1/members/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_list_query_parameters(self, client):
        trainer = (await client.post("/api/v1/trainers", json=trainer_payload())).json()["data"]
        await client.post("/api/v1/members", json=member_payload(name="Asha", assigned_trainer=trainer["id"]))
        await client.post("/api/v1/members", json=member_payload(name="Bala", status="pending"))

        by_trainer = (await client.get("/api/v1/members", params={"trainer_id": trainer["id"]})).json()
        assert [m["name"] for m in by_trainer["data"]] == ["Asha"]

        pending = (await client.get("/api/v1/members", params={"status": "pending"})).json()
        assert [m["name"] for m in pending["data"]] == ["Bala"]

        bad_sort = await client.get("/api/v1/members", params={"sort_by": "nope"})
        assert bad_sort.status_code == 400

    @pytest.mark.asyncio
    async def test_check_in_requires_active_status(self, client):
        pending = (await client.post("/api/v1/members", json=member_payload(status="pending"))).json()["data"]
        response = await client.post(f"/api/v1/members/{pending['id']}/checkin")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"

        active = (await client.post("/api/v1/members", json=member_payload())).json()["data"]
        response = await client.post(f"/api/v1/members/{active['id']}/checkin")
        assert response.status_code == 200
        assert response.json()["data"]["member"]["total_visits"] == 1

        checkins = (await client.get("/api/v1/checkins", params={"member_id": active["id"]})).json()["data"]
        assert len(checkins) == 1

    @pytest.mark.asyncio
    async def test_renew_and_expire(self, client):
        member = (
            await client.post(
                "/api/v1/members",
                json=member_payload(start_date="2020-01-01", expiry_date="2020-02-01"),
            )
        ).json()["data"]

        expired = (await client.post("/api/v1/members/expire")).json()["data"]
        assert expired == {"expired": [member["id"]]}

        response = await client.post(
            f"/api/v1/members/{member['id']}/renew",
            json={"membership_type": "quarterly", "start_date": "2024-11-30"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["expiry_date"] == "2025-02-28"
        assert response.json()["data"]["status"] == "active"

    @pytest.mark.asyncio
    async def test_expiring_soon_rejects_out_of_range_days(self, client):
        response = await client.get("/api/v1/members/expiring-soon", params={"days": 120})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_cascades(self, client):
        member = (await client.post("/api/v1/members", json=member_payload())).json()["data"]
        await client.post("/api/v1/invoices", json=invoice_payload(member["id"]))

        response = await client.delete(f"/api/v1/members/{member['id']}")
        assert response.status_code == 200
        invoices = (await client.get("/api/v1/invoices")).json()
        assert invoices["data"] == []


class TestInvoicesAPI:
    @pytest.mark.asyncio
    async def test_create_status_and_summary(self, client):
        member = (await client.post("/api/v1/members", json=member_payload())).json()["data"]
        created = await client.post("/api/v1/invoices", json=invoice_payload(member["id"]))
        assert created.status_code == 201
        invoice = created.json()["data"]
        assert invoice["id"] == "#MP0001"
        assert invoice["total"] == "1178.82"

        path = f"/api/v1/invoices/{quote(invoice['id'], safe='')}"
        assert (await client.get(path)).json()["data"]["id"] == "#MP0001"

        paid = await client.put(f"{path}/status", json={"status": "paid"})
        assert paid.json()["data"]["status"] == "paid"

        summary = (await client.get("/api/v1/invoices/summary")).json()["data"]
        assert summary["paid_invoices"] == 1
        assert summary["paid_amount"] == "1178.82"


class TestOtherCollections:
    @pytest.mark.asyncio
    async def test_product_sale(self, client):
        product = (await client.post("/api/v1/products", json=product_payload(quantity_in_stock=1))).json()["data"]
        response = await client.post(f"/api/v1/products/{product['id']}/sale", json={"units": 5})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_settings_round_trip(self, client):
        response = await client.put("/api/v1/settings/pricing", json={"monthly_fee": "2100"})
        assert response.json()["data"]["monthly_fee"] == "2100.00"
        pricing = (await client.get("/api/v1/settings/pricing")).json()["data"]
        assert pricing["monthly_fee"] == "2100.00"

        await client.put("/api/v1/settings/terms", json={"text": "Be kind."})
        assert (await client.get("/api/v1/settings/terms")).json()["data"] == {"text": "Be kind."}

    @pytest.mark.asyncio
    async def test_activities_and_analytics(self, client):
        await client.post("/api/v1/members", json=member_payload())
        activities = (await client.get("/api/v1/activities")).json()
        assert activities["pagination"]["total_count"] == 1

        overview = (await client.get("/api/v1/analytics")).json()["data"]
        assert overview["members"]["total"] == 1

        cleared = (await client.delete("/api/v1/activities")).json()["data"]
        assert cleared == {"removed": 1}


class TestSyncAPI:
    @pytest.mark.asyncio
    async def test_bulk_read_returns_every_record(self, client):
        for _ in range(25):
            await client.post("/api/v1/members", json=member_payload())
        response = await client.get("/api/v1/sync/members")
        assert response.status_code == 200
        assert len(response.json()["data"]) == 25

    @pytest.mark.asyncio
    async def test_unknown_collection_is_not_found(self, client):
        response = await client.get("/api/v1/sync/passwords")
        assert response.status_code == 404
