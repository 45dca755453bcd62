"""
Quota ledger: append-only log of completed analyses per user.
"""

from datetime import datetime
from typing import Callable, Optional, Protocol

from loguru import logger

from shared.database import BaaSClient, parse_timestamp
from shared.errors import BaaSError, LedgerUnavailable
from shared.models import UsageEvent, utcnow


class QuotaLedger(Protocol):
    """Storage adapter used by the admission check and the invoker."""

    async def count_recent(self, user_id: str, since: datetime) -> list[datetime]:
        """Timestamps of events for ``user_id`` at or after ``since``, newest first."""
        ...

    async def append(self, user_id: str) -> UsageEvent:
        """Record one event; ``created_at`` is assigned by the ledger."""
        ...


class SupabaseQuotaLedger:
    """Ledger backed by the ``analysis_logs`` table."""

    def __init__(self, client: BaaSClient, table: str = "analysis_logs"):
        self.client = client
        self.table = table

    async def count_recent(self, user_id: str, since: datetime) -> list[datetime]:
        try:
            rows = await self.client.select(
                self.table,
                columns="created_at",
                eq={"user_id": user_id},
                gte={"created_at": since},
                order="created_at",
                descending=True,
            )
        except BaaSError as e:
            raise LedgerUnavailable(f"Quota ledger query failed: {e}") from e

        timestamps = [parse_timestamp(row["created_at"]) for row in rows]
        return sorted(timestamps, reverse=True)

    async def append(self, user_id: str) -> UsageEvent:
        try:
            row = await self.client.insert(self.table, {"user_id": user_id})
        except BaaSError as e:
            raise LedgerUnavailable(f"Quota ledger insert failed: {e}") from e

        event = UsageEvent(user_id=user_id, created_at=parse_timestamp(row["created_at"]))
        logger.debug(f"Recorded analysis for {user_id} at {event.created_at.isoformat()}")
        return event


class InMemoryQuotaLedger:
    """Process-local ledger for development and tests."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or utcnow
        self._events: list[UsageEvent] = []

    @property
    def events(self) -> list[UsageEvent]:
        return list(self._events)

    async def count_recent(self, user_id: str, since: datetime) -> list[datetime]:
        return sorted(
            (
                e.created_at
                for e in self._events
                if e.user_id == user_id and e.created_at >= since
            ),
            reverse=True,
        )

    async def append(self, user_id: str) -> UsageEvent:
        created_at = self.clock()
        # Keep created_at non-decreasing in insertion order
        if self._events and created_at < self._events[-1].created_at:
            created_at = self._events[-1].created_at
        event = UsageEvent(user_id=user_id, created_at=created_at)
        self._events.append(event)
        return event

    def seed(self, user_id: str, created_at: datetime) -> UsageEvent:
        """Insert a historical event directly (test fixtures)."""
        event = UsageEvent(user_id=user_id, created_at=created_at)
        self._events.append(event)
        self._events.sort(key=lambda e: e.created_at)
        return event
