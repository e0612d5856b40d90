"""
Payload factories for creating valid test data.

Every factory returns a plain dict accepted by the matching create
schema.  Override any field via kwargs.

Usage:
    member = await members.create(member_payload(email="custom@test.com"))
"""

import itertools
from datetime import date, datetime, timedelta, timezone

_counter = itertools.count(1)


def _unique() -> int:
    return next(_counter)


def member_payload(**overrides):
    n = _unique()
    defaults = {
        "name": f"Member {n}",
        "email": f"member{n}@test.com",
        "phone": f"+91 90000 {n:05d}",
        "membership_type": "monthly",
        "start_date": date.today().isoformat(),
        "status": "active",
    }
    defaults.update(overrides)
    return defaults


def invoice_payload(member_id: str, **overrides):
    defaults = {
        "member_id": member_id,
        "description": "Membership fee",
        "items": [
            {"description": "Monthly membership", "quantity": 1, "unit_price": "999.00"},
        ],
    }
    defaults.update(overrides)
    return defaults


def trainer_payload(**overrides):
    n = _unique()
    defaults = {
        "name": f"Trainer {n}",
        "email": f"trainer{n}@test.com",
        "specialization": "Strength training",
        "certifications": ["ACE"],
    }
    defaults.update(overrides)
    return defaults


def visitor_payload(**overrides):
    n = _unique()
    defaults = {
        "name": f"Visitor {n}",
        "phone": f"+91 80000 {n:05d}",
        "purpose": "Trial session",
    }
    defaults.update(overrides)
    return defaults


def followup_payload(member_id=None, visitor_id=None, **overrides):
    defaults = {
        "member_id": member_id,
        "visitor_id": visitor_id,
        "type": "membership_renewal",
        "due_date": (date.today() + timedelta(days=3)).isoformat(),
    }
    defaults.update(overrides)
    return defaults


def session_payload(trainer_id: str, member_id=None, **overrides):
    defaults = {
        "trainer_id": trainer_id,
        "member_id": member_id,
        "start_time": (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat(),
    }
    defaults.update(overrides)
    return defaults


def product_payload(**overrides):
    n = _unique()
    defaults = {
        "name": f"Whey Protein {n}",
        "base_price": "1800.00",
        "selling_price": "2400.00",
        "quantity_in_stock": 10,
    }
    defaults.update(overrides)
    return defaults
