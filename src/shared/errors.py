"""
Error taxonomy shared by the services and rendered by the HTTP layer.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Optional


class MatchAIError(Exception):
    """Base error carrying an HTTP status and a stable error code."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        """Body returned to API clients."""
        return {"error": self.error, "message": self.detail}


class AuthenticationRequired(MatchAIError):
    status_code = 401
    error = "authentication_required"

    def __init__(self, detail: str = "Please log in to use the analysis feature.") -> None:
        super().__init__(detail)


class PermissionDenied(MatchAIError):
    status_code = 403
    error = "forbidden"

    def __init__(self, detail: str = "You don't have access to this resource.") -> None:
        super().__init__(detail)


class NotFound(MatchAIError):
    status_code = 404
    error = "not_found"


class RateLimited(MatchAIError):
    """Daily quota exhausted; never reaches the LLM collaborator."""

    status_code = 429
    error = "daily_limit_reached"

    def __init__(
        self,
        retry_after: timedelta,
        last_analysis_at: Optional[datetime] = None,
        limit: int = 1,
        window: timedelta = timedelta(hours=24),
    ) -> None:
        self.retry_after = max(retry_after, timedelta(0))
        self.last_analysis_at = last_analysis_at
        self.limit = limit
        noun = "analysis" if limit == 1 else "analyses"
        window_hours = round(window.total_seconds() / 3600)
        super().__init__(
            f"You can only run {limit} {noun} every {window_hours} hours. "
            f"Please try again in {self.hours_until_reset} hour(s)."
        )

    @property
    def hours_until_reset(self) -> int:
        return math.ceil(self.retry_after.total_seconds() / 3600)

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.retry_after.total_seconds())

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["last_analysis_at"] = (
            self.last_analysis_at.isoformat() if self.last_analysis_at else None
        )
        payload["hours_until_reset"] = self.hours_until_reset
        return payload


class UpstreamFailure(MatchAIError):
    """The LLM collaborator errored, timed out or returned an unusable payload."""

    status_code = 502

    def __init__(self, reason: str, upstream_status: Optional[int] = None) -> None:
        self.reason = reason
        self.upstream_status = upstream_status
        if upstream_status == 429:
            message = "The AI service is busy. Please wait a moment and try again."
        elif upstream_status == 402:
            message = "AI usage limit reached. Please contact support."
        else:
            message = "Failed to analyze match. Please try again."
        super().__init__(message)

    @property
    def error(self) -> str:  # type: ignore[override]
        if self.upstream_status == 429:
            return "upstream_rate_limited"
        if self.upstream_status == 402:
            return "upstream_quota_exhausted"
        return "upstream_failure"

    def __str__(self) -> str:
        return self.reason


class LedgerUnavailable(MatchAIError):
    """The quota ledger could not be read or written."""

    status_code = 503
    error = "ledger_unavailable"


class BaaSError(MatchAIError):
    """A backend-as-a-service REST call failed."""

    status_code = 502
    error = "storage_unavailable"

    def __init__(self, detail: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(detail)
        self.upstream_status = upstream_status
