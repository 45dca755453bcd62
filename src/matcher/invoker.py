"""
Analysis invoker: quota gate, LLM analysis, then usage accounting.
"""

from datetime import datetime
from typing import Callable, Optional, Protocol

from loguru import logger

from quota.admission import Deny, QuotaGate
from quota.ledger import QuotaLedger
from shared.models import AnalysisRequest, AnalysisResult, MatchAnalysis, Principal, utcnow


class Analyzer(Protocol):
    async def analyze(self, cv_text: str, job_description: str) -> MatchAnalysis:
        ...


class AnalysisInvoker:
    """Runs one analysis for a principal, consuming quota only on success."""

    def __init__(
        self,
        gate: QuotaGate,
        analyzer: Analyzer,
        ledger: Optional[QuotaLedger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.gate = gate
        self.analyzer = analyzer
        self.ledger = ledger or gate.ledger
        self.clock = clock or utcnow

    async def run_analysis(
        self,
        principal: Principal,
        request: AnalysisRequest,
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """
        Analyse ``request`` on behalf of ``principal``.

        Raises:
            RateLimited: quota exhausted; the LLM is not contacted
            UpstreamFailure: the LLM call failed; no usage is recorded
        """
        now = now or self.clock()

        decision = await self.gate.check_quota(principal, now)
        if isinstance(decision, Deny):
            raise decision.to_error(self.gate.limit, self.gate.window)

        analysis = await self.analyzer.analyze(request.cv_text, request.job_description)

        if not principal.is_admin:
            await self._record_usage(principal.id)

        result = AnalysisResult.from_analysis(analysis, request, created_at=now)
        logger.info(
            f"Analysis for {principal.id}: {result.candidate_name} / {result.job_title} "
            f"scored {result.score}"
        )
        return result

    async def _record_usage(self, user_id: str) -> None:
        # Not atomic with the response; a failed write under-counts usage.
        try:
            await self.ledger.append(user_id)
        except Exception as e:
            logger.error(f"Failed to record analysis usage for {user_id}: {e}")
