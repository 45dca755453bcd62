"""
Quota Service - rolling-window admission control for analyses.
"""

from .admission import Allow, Decision, Deny, QuotaGate
from .ledger import InMemoryQuotaLedger, QuotaLedger, SupabaseQuotaLedger

__all__ = [
    "Allow",
    "Deny",
    "Decision",
    "QuotaGate",
    "QuotaLedger",
    "SupabaseQuotaLedger",
    "InMemoryQuotaLedger",
]
