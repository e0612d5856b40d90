"""Tests for trainers, sessions, follow-ups, products, settings and analytics."""
from datetime import date

import pytest

from gym_desk_api.app.core.errors import InvalidStateError, NotFoundError, ValidationError
from gym_desk_api.app.services.activity_service import ActivityService, CheckInService
from gym_desk_api.app.services.followup_service import FollowUpService
from gym_desk_api.app.services.product_service import ProductService
from gym_desk_api.app.services.session_service import SessionService
from gym_desk_api.app.services.settings_service import SettingsService
from gym_desk_api.app.services.statistics_service import StatisticsService
from gym_desk_api.app.services.trainer_service import TrainerService
from gym_desk_api.app.services.visitor_service import VisitorService
from tests.factories import (
    followup_payload,
    member_payload,
    product_payload,
    session_payload,
    trainer_payload,
    visitor_payload,
)


class TestSessions:
    @pytest.mark.asyncio
    async def test_trainer_counters_follow_sessions(self, repository, members):
        trainers = TrainerService(repository)
        sessions = SessionService(repository)
        trainer = await trainers.create(trainer_payload())
        other = await trainers.create(trainer_payload())
        member = await members.create(member_payload(name="Asha"))

        session = await sessions.create(session_payload(trainer["id"], member["id"]))
        assert session["trainer_name"] == trainer["name"]
        assert session["member_name"] == "Asha"

        await sessions.update(session["id"], {"status": "in_progress"})
        counted = await trainers.get(trainer["id"])
        assert counted["total_sessions"] == 1
        assert counted["current_sessions"] == 1

        await sessions.update(session["id"], {"trainer_id": other["id"]})
        assert (await trainers.get(trainer["id"]))["total_sessions"] == 0
        assert (await trainers.get(other["id"]))["current_sessions"] == 1

        await sessions.delete(session["id"])
        assert (await trainers.get(other["id"]))["total_sessions"] == 0

    @pytest.mark.asyncio
    async def test_unknown_trainer_is_not_found(self, repository):
        with pytest.raises(NotFoundError):
            await SessionService(repository).create(session_payload("missing"))


class TestFollowUps:
    @pytest.mark.asyncio
    async def test_subject_name_and_completion_stamp(self, repository):
        visitor = await VisitorService(repository).create(visitor_payload(name="Priya"))
        followups = FollowUpService(repository)

        followup = await followups.create(followup_payload(visitor_id=visitor["id"]))
        assert followup["subject_name"] == "Priya"
        assert followup["completed_at"] is None

        done = await followups.update(followup["id"], {"status": "completed"})
        assert done["completed_at"] is not None

        reopened = await followups.update(followup["id"], {"status": "pending"})
        assert reopened["completed_at"] is None

    @pytest.mark.asyncio
    async def test_requires_exactly_one_subject(self, repository, members):
        member = await members.create(member_payload())
        visitor = await VisitorService(repository).create(visitor_payload())
        followups = FollowUpService(repository)
        with pytest.raises(ValidationError):
            await followups.create(followup_payload())
        with pytest.raises(ValidationError):
            await followups.create(followup_payload(member_id=member["id"], visitor_id=visitor["id"]))

    @pytest.mark.asyncio
    async def test_switching_subject_clears_previous_reference(self, repository, members):
        member = await members.create(member_payload(name="Asha"))
        visitor = await VisitorService(repository).create(visitor_payload())
        followups = FollowUpService(repository)
        followup = await followups.create(followup_payload(visitor_id=visitor["id"]))

        moved = await followups.update(followup["id"], {"member_id": member["id"]})
        assert moved["visitor_id"] is None
        assert moved["subject_name"] == "Asha"


class TestProducts:
    @pytest.mark.asyncio
    async def test_sale_updates_stock_and_profit(self, repository):
        products = ProductService(repository)
        product = await products.create(product_payload(quantity_in_stock=5))
        assert product["margin"] == "600.00"
        assert product["profit"] == "0.00"

        sold = await products.record_sale(product["id"], {"units": 2})
        assert sold["quantity_in_stock"] == 3
        assert sold["units_sold"] == 2
        assert sold["profit"] == "1200.00"

    @pytest.mark.asyncio
    async def test_sale_beyond_stock_is_invalid_state(self, repository):
        products = ProductService(repository)
        product = await products.create(product_payload(quantity_in_stock=1))
        with pytest.raises(InvalidStateError):
            await products.record_sale(product["id"], {"units": 2})
        assert (await products.get(product["id"]))["quantity_in_stock"] == 1


class TestSettings:
    @pytest.mark.asyncio
    async def test_defaults_then_replace(self, repository):
        service = SettingsService(repository)
        assert (await service.get_pricing())["monthly_fee"] == "1999.00"

        await service.set_pricing({"monthly_fee": "2499", "yearly_fee": "9000"})
        pricing = await service.get_pricing()
        assert pricing["monthly_fee"] == "2499.00"
        assert pricing["quarterly_fee"] == "5500.00"

        await service.set_terms({"text": "No refunds."})
        assert (await service.get_terms()) == {"text": "No refunds."}

    @pytest.mark.asyncio
    async def test_negative_fee_is_rejected(self, repository):
        with pytest.raises(ValidationError):
            await SettingsService(repository).set_pricing({"monthly_fee": "-1"})


class TestActivityLog:
    @pytest.mark.asyncio
    async def test_mutations_are_logged_newest_first(self, repository, members):
        member = await members.create(member_payload(name="Asha"))
        await members.update(member["id"], {"notes": "Prefers mornings"})
        await members.check_in(member["id"])

        activities = ActivityService(repository)
        rows, pagination = await activities.list(member_id=member["id"])
        assert [row["action"] for row in rows] == ["Member checked in", "Member updated", "Member created"]
        assert rows[1]["details"] == "Changed: notes"
        assert pagination.total_count == 3

        assert await activities.clear() == 3
        assert await activities.all() == []

    @pytest.mark.asyncio
    async def test_checkins_listed_by_date(self, repository, members):
        member = await members.create(member_payload())
        result = await members.check_in(member["id"])
        checkins = CheckInService(repository)
        day = date.fromisoformat(result["check_in"]["date"])
        assert len(await checkins.list(on=day)) == 1
        assert await checkins.list(on=date(2000, 1, 1)) == []


@pytest.mark.asyncio
async def test_overview_counts(repository, members, invoices):
    member = await members.create(member_payload(membership_type="annual"))
    await members.create(member_payload(start_date="2020-01-01", expiry_date="2020-02-01", status="expired"))
    await members.check_in(member["id"])
    await invoices.create(
        {"member_id": member["id"], "items": [{"description": "Fee", "quantity": 1, "unit_price": "100"}]}
    )

    overview = await StatisticsService(repository).overview()
    assert overview["members"] == {"total": 2, "active": 1, "expiring_soon": 0, "expired": 1}
    assert overview["revenue"]["pending"] == "118.00"
    assert overview["invoices"] == 1
    assert overview["checkins_today"] == 1
