"""
Daily-quota admission check for the analysis endpoint.

A standard principal may run at most ``limit`` analyses in any rolling
window (24h by default). Admins bypass the check without a ledger read.
If the ledger cannot be queried the check fails open: availability wins
over strictness, and the failure is only logged.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from loguru import logger

from shared.config import Settings, get_settings
from shared.errors import RateLimited
from shared.models import Principal, QuotaStatus, utcnow

from .ledger import QuotaLedger


@dataclass(frozen=True)
class Allow:
    """Request may proceed."""

    used: int = 0
    last_analysis_at: Optional[datetime] = None
    ledger_available: bool = True


@dataclass(frozen=True)
class Deny:
    """Quota exhausted until ``retry_after`` has elapsed."""

    retry_after: timedelta
    last_analysis_at: datetime
    used: int

    def to_error(self, limit: int, window: timedelta) -> RateLimited:
        return RateLimited(
            retry_after=self.retry_after,
            last_analysis_at=self.last_analysis_at,
            limit=limit,
            window=window,
        )


Decision = Union[Allow, Deny]


class QuotaGate:
    """Evaluates the rolling-window quota for a principal."""

    def __init__(
        self,
        ledger: QuotaLedger,
        limit: int = 1,
        window: timedelta = timedelta(hours=24),
    ):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window <= timedelta(0):
            raise ValueError("window must be positive")
        self.ledger = ledger
        self.limit = limit
        self.window = window

    @classmethod
    def from_settings(cls, ledger: QuotaLedger, settings: Optional[Settings] = None) -> "QuotaGate":
        settings = settings or get_settings()
        return cls(
            ledger,
            limit=settings.quota_daily_limit,
            window=timedelta(hours=settings.quota_window_hours),
        )

    async def check_quota(self, principal: Principal, now: Optional[datetime] = None) -> Decision:
        """
        Decide whether ``principal`` may run another analysis at ``now``.

        Returns:
            Allow, or Deny carrying the time until the slot-freeing event expires
        """
        if not principal.id:
            raise ValueError("principal.id must be non-empty")
        now = now or utcnow()
        if now.tzinfo is None or now.utcoffset() is None:
            raise ValueError("now must be timezone-aware")
        if principal.is_admin:
            return Allow()

        try:
            timestamps = await self.ledger.count_recent(principal.id, now - self.window)
        except Exception as e:
            logger.warning(f"Quota ledger unavailable for {principal.id}, allowing request: {e}")
            return Allow(ledger_available=False)

        if len(timestamps) < self.limit:
            return Allow(
                used=len(timestamps),
                last_analysis_at=timestamps[0] if timestamps else None,
            )

        # The limit-th most recent event is the one whose expiry frees a slot
        limiting = timestamps[self.limit - 1]
        retry_after = max(limiting + self.window - now, timedelta(0))
        logger.info(
            f"Quota reached for {principal.id}: {len(timestamps)}/{self.limit}, "
            f"retry in {retry_after}"
        )
        return Deny(
            retry_after=retry_after,
            last_analysis_at=timestamps[0],
            used=len(timestamps),
        )

    async def status(self, principal: Principal, now: Optional[datetime] = None) -> QuotaStatus:
        """Summarise the quota state for ``principal``; read-only."""
        if principal.is_admin:
            return QuotaStatus(limit=None, used=0, remaining=None, is_admin=True)

        decision = await self.check_quota(principal, now)
        if isinstance(decision, Deny):
            return QuotaStatus(
                limit=self.limit,
                used=decision.used,
                remaining=0,
                is_admin=False,
                hours_until_reset=decision.to_error(self.limit, self.window).hours_until_reset,
                last_analysis_at=decision.last_analysis_at,
            )
        return QuotaStatus(
            limit=self.limit,
            used=decision.used,
            remaining=self.limit - decision.used,
            is_admin=False,
            last_analysis_at=decision.last_analysis_at,
        )
