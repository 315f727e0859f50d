"""
Reports service: front-desk and management summaries.

Provides:
    - stats: record totals, active counts and collected revenue
    - expiring: active contracts ending within N days, ranked by renewal urgency
    - overdue: unpaid payments past their due date, ranked by collection urgency

Both backends only offer equality filters, so date windows are applied here
after loading the candidate records.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from gymdesk.sales.service import sale_total
from gymdesk.store import CONTRACTS, MEMBERS, PAYMENTS, SALES, SCHEDULE, EntityStore
from gymdesk.utils import as_datetime

SECONDS_PER_DAY = 24 * 60 * 60


def renewal_priority(days_left: int) -> str:
    if days_left <= 3:
        return "high"
    if days_left <= 7:
        return "medium"
    return "low"


def collection_priority(days_overdue: int) -> str:
    if days_overdue >= 15:
        return "high"
    if days_overdue >= 7:
        return "medium"
    return "low"


def _priority_counts(rows: list[dict], key: str) -> dict:
    return {
        f"{level}_priority": sum(1 for row in rows if row[key] == level)
        for level in ("high", "medium", "low")
    }


class ReportsService:
    def __init__(self, store: EntityStore):
        self.store = store
        self._members: dict[str, Optional[dict]] = {}

    async def _member_summary(self, member_id: Optional[str]) -> dict:
        if member_id and member_id not in self._members:
            self._members[member_id] = await self.store.get(MEMBERS, member_id)
        member = self._members.get(member_id) if member_id else None
        if not member:
            return {"id": member_id, "name": "Unknown", "email": ""}
        name = " ".join(
            p for p in (member.get("first_name"), member.get("paternal_last_name")) if p
        )
        return {"id": member_id, "name": name or "Unknown", "email": member.get("email") or ""}

    # ── Stats ────────────────────────────────────────────────────

    async def get_stats(self, include_revenue: bool = False) -> dict:
        """Totals per entity; revenue figures only when ``include_revenue``."""
        stats = {
            "members": await self.store.count(MEMBERS),
            "members_active": await self.store.count(MEMBERS, {"status": "active"}),
            "contracts": await self.store.count(CONTRACTS),
            "contracts_active": await self.store.count(CONTRACTS, {"status": "active"}),
            "payments": await self.store.count(PAYMENTS),
            "payments_pending": await self.store.count(PAYMENTS, {"status": "pending"}),
            "schedule": await self.store.count(SCHEDULE),
            "schedule_upcoming": await self.store.count(SCHEDULE, {"status": "scheduled"}),
            "sales": await self.store.count(SALES),
        }
        stats["total"] = stats["members"] + stats["contracts"] + stats["payments"] + stats["schedule"]

        if include_revenue:
            paid = await self.store.list_all(PAYMENTS, {"status": "paid"})
            sales = await self.store.list_all(SALES, {"status": "completed"})
            stats["payments_revenue"] = round(sum(float(p.get("amount") or 0) for p in paid), 2)
            stats["sales_revenue"] = round(sum(sale_total(s) for s in sales), 2)
            stats["total_revenue"] = round(stats["payments_revenue"] + stats["sales_revenue"], 2)
        return stats

    # ── Expiring contracts ───────────────────────────────────────

    async def get_expiring_contracts(self, days: int = 30, limit: int = 100) -> dict:
        now = datetime.now(timezone.utc)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        window_end = now + timedelta(days=days)

        rows = []
        for contract in await self.store.list_all(CONTRACTS, {"status": "active"}):
            end = as_datetime(contract.get("end_date"))
            if not end or end < today or end > window_end:
                continue
            days_left = max(math.ceil((end - now).total_seconds() / SECONDS_PER_DAY), 0)
            rows.append(
                {
                    "contract_id": contract["id"],
                    "contract_type": contract.get("contract_type"),
                    "end_date": end,
                    "days_until_expiry": days_left,
                    "monthly_fee": float(contract.get("monthly_fee") or 0),
                    "member": await self._member_summary(contract.get("member_id")),
                    "renewal_priority": renewal_priority(days_left),
                }
            )

        rows.sort(key=lambda r: r["days_until_expiry"])
        rows = rows[:limit]
        summary = {
            "total_expiring": len(rows),
            **_priority_counts(rows, "renewal_priority"),
            "total_revenue_at_risk": round(sum(r["monthly_fee"] for r in rows), 2),
            "average_days_until_expiry": (
                round(sum(r["days_until_expiry"] for r in rows) / len(rows)) if rows else 0
            ),
        }
        return {
            "summary": summary,
            "contracts": rows,
            "query_params": {"days": days, "limit": limit, "generated_at": now},
        }

    # ── Overdue payments ─────────────────────────────────────────

    async def get_overdue_payments(self, limit: int = 100) -> dict:
        now = datetime.now(timezone.utc)

        rows = []
        for payment in await self.store.list_all(PAYMENTS, {"status": ["pending", "failed"]}):
            due = as_datetime(payment.get("due_date"))
            if not due or due > now:
                continue
            days_overdue = math.ceil((now - due).total_seconds() / SECONDS_PER_DAY)
            rows.append(
                {
                    "payment_id": payment["id"],
                    "payment_reference": payment.get("payment_reference"),
                    "amount": float(payment.get("amount") or 0),
                    "payment_type": payment.get("payment_type") or "membership",
                    "status": payment.get("status"),
                    "due_date": due,
                    "days_overdue": days_overdue,
                    "member": await self._member_summary(payment.get("member_id")),
                    "collection_priority": collection_priority(days_overdue),
                }
            )

        rows.sort(key=lambda r: r["days_overdue"], reverse=True)
        rows = rows[:limit]
        summary = {
            "total_overdue": len(rows),
            **_priority_counts(rows, "collection_priority"),
            "total_amount_overdue": round(sum(r["amount"] for r in rows), 2),
            "average_days_overdue": (
                round(sum(r["days_overdue"] for r in rows) / len(rows)) if rows else 0
            ),
        }
        return {
            "summary": summary,
            "payments": rows,
            "query_params": {"limit": limit, "generated_at": now},
        }
