# Shared module for common utilities, models, and configuration
from .config import Settings, get_settings
from .database import BaaSClient
from .errors import (
    AuthenticationRequired,
    BaaSError,
    LedgerUnavailable,
    MatchAIError,
    NotFound,
    PermissionDenied,
    RateLimited,
    UpstreamFailure,
)
from .models import AnalysisRequest, AnalysisResult, MatchAnalysis, Principal, Role, UsageEvent

__all__ = [
    "Settings",
    "get_settings",
    "BaaSClient",
    "MatchAIError",
    "AuthenticationRequired",
    "PermissionDenied",
    "NotFound",
    "RateLimited",
    "UpstreamFailure",
    "LedgerUnavailable",
    "BaaSError",
    "Principal",
    "Role",
    "UsageEvent",
    "MatchAnalysis",
    "AnalysisRequest",
    "AnalysisResult",
]
