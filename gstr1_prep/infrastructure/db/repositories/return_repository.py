# gstr1_prep/infrastructure/db/repositories/return_repository.py

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from gstr1_prep.domain.models.filing import ReturnRecord


@dataclass
class DashboardStats:
    total_returns: int = 0
    total_sales: float = 0.0
    total_tax: float = 0.0
    total_invoices: int = 0


class InMemoryReturnRepository:
    """Filed-return metadata kept in process memory."""

    def __init__(self) -> None:
        self._records: dict[str, ReturnRecord] = {}

    async def save_return(self, record: ReturnRecord) -> ReturnRecord:
        """Assign id and created_at, then store a copy."""
        saved = record.model_copy(
            update={
                "id": record.id or str(uuid.uuid4()),
                "created_at": record.created_at or datetime.now(timezone.utc),
            }
        )
        self._records[saved.id] = saved
        return saved

    async def get_by_id(self, record_id: str) -> ReturnRecord | None:
        return self._records.get(record_id)

    async def list_returns(self, profile_id: str | None = None) -> list[ReturnRecord]:
        """Newest first, optionally limited to one profile."""
        records = [
            r for r in self._records.values()
            if profile_id is None or r.profile_id == profile_id
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def delete_return(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def dashboard_stats(self) -> DashboardStats:
        stats = DashboardStats(total_returns=len(self._records))
        for r in self._records.values():
            stats.total_sales += r.total_value
            stats.total_tax += r.total_tax
            stats.total_invoices += r.total_invoices
        stats.total_sales = round(stats.total_sales, 2)
        stats.total_tax = round(stats.total_tax, 2)
        return stats
