"""
Service layer for the analytics overview.

Aggregates member, revenue and activity figures for the dashboard.
All queries are read-only and run in a single transaction so the
figures are consistent with each other.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict

from ..core.config import Settings, settings
from ..core.db import SQLiteRepository
from ..core.rules import parse_date, quantize_money, today

EXPIRING_WINDOW_DAYS = 30


class StatisticsService:
    """Service providing aggregated statistics for the front desk."""

    def __init__(self, repository: SQLiteRepository, config: Settings = settings) -> None:
        self.repository = repository
        self.config = config

    async def overview(self) -> Dict[str, Any]:
        """Return high-level metrics.

        ``members.expiring_soon`` counts active members whose expiry
        falls within the next 30 days.  Revenue is grouped by invoice
        status; ``activities_today`` counts log entries since midnight UTC.
        """
        current_day = today()
        cutoff = current_day + timedelta(days=EXPIRING_WINDOW_DAYS)
        with self.repository.transaction() as tx:
            members = tx.find("members")
            invoices = tx.find("invoices")
            trainers_count = tx.count("trainers")
            visitors_today = tx.count("visitors", {"visit_date": current_day.isoformat()})
            pending_followups = tx.count("followups", {"status": "pending"})
            checkins_today = tx.count("checkins", {"date": current_day.isoformat()})
            activities_today = tx.cursor.execute(
                "SELECT COUNT(*) FROM activities WHERE time >= ?", (current_day.isoformat(),)
            ).fetchone()[0]

        active = [m for m in members if m["status"] == "active"]
        expiring = [m for m in active if current_day <= parse_date(m["expiry_date"]) <= cutoff]
        revenue = {"paid": Decimal("0"), "pending": Decimal("0"), "overdue": Decimal("0")}
        for invoice in invoices:
            revenue[invoice["status"]] += Decimal(invoice["total"])
        return {
            "members": {
                "total": len(members),
                "active": len(active),
                "expiring_soon": len(expiring),
                "expired": sum(1 for m in members if m["status"] == "expired"),
            },
            "revenue": {status: str(quantize_money(amount)) for status, amount in revenue.items()},
            "invoices": len(invoices),
            "trainers": trainers_count,
            "visitors_today": visitors_today,
            "checkins_today": checkins_today,
            "pending_followups": pending_followups,
            "activities_today": activities_today,
        }
