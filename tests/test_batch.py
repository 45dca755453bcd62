"""Tests for the employer batch dashboard."""

import pytest
from pydantic import ValidationError

from conftest import build_analysis
from matcher.batch import preview, run_batch
from matcher.invoker import AnalysisInvoker
from quota.admission import QuotaGate
from shared.errors import RateLimited, UpstreamFailure
from shared.models import BatchRequest, CandidateInput, MAX_BATCH_CANDIDATES


def batch_of(*names: str, job: str = "Backend engineer, Python") -> BatchRequest:
    return BatchRequest(
        job_description=job,
        candidates=[CandidateInput(name=name, cv_text=f"CV of {name}") for name in names],
        job_title="Backend Engineer",
        company="Acme",
    )


class TestPreview:
    def test_short_description_unchanged(self):
        assert preview("Short job") == "Short job"

    def test_long_description_truncated(self):
        text = "x" * 250

        assert preview(text) == "x" * 200 + "..."


class TestRunBatch:
    async def test_candidates_sorted_by_score(self, analyzer, admin, ledger, clock):
        analyzer.queue = [build_analysis(55), build_analysis(91), build_analysis(70)]
        invoker = AnalysisInvoker(QuotaGate(ledger, limit=1), analyzer, clock=clock)

        report = await run_batch(invoker, admin, batch_of("Ann", "Bo", "Cy"))

        assert [(c.candidate_name, c.score) for c in report.candidates] == [
            ("Bo", 91),
            ("Cy", 70),
            ("Ann", 55),
        ]
        assert all(c.company == "Acme" for c in report.candidates)
        assert report.skipped == []
        assert analyzer.calls[0] == ("CV of Ann", "Backend engineer, Python")

    async def test_upstream_failure_skips_candidate(self, analyzer, admin, gate, clock):
        analyzer.queue = [build_analysis(60), UpstreamFailure("timeout"), build_analysis(75)]
        invoker = AnalysisInvoker(gate, analyzer, clock=clock)

        report = await run_batch(invoker, admin, batch_of("Ann", "Bo", "Cy"))

        assert [c.candidate_name for c in report.candidates] == ["Cy", "Ann"]
        assert [(s.name, s.reason) for s in report.skipped] == [("Bo", "upstream_failure")]

    async def test_quota_stops_batch(self, analyzer, user, ledger, clock):
        invoker = AnalysisInvoker(QuotaGate(ledger, limit=2), analyzer, clock=clock)

        report = await run_batch(invoker, user, batch_of("Ann", "Bo", "Cy", "Di"))

        assert len(report.candidates) == 2
        assert [(s.name, s.reason) for s in report.skipped] == [
            ("Cy", "daily_limit_reached"),
            ("Di", "daily_limit_reached"),
        ]
        assert len(analyzer.calls) == 2
        assert len(ledger.events) == 2

    async def test_quota_exhausted_before_first_candidate(self, analyzer, user, gate, ledger, clock):
        await ledger.append(user.id)
        invoker = AnalysisInvoker(gate, analyzer, clock=clock)

        with pytest.raises(RateLimited):
            await run_batch(invoker, user, batch_of("Ann", "Bo"))

        assert analyzer.calls == []

    async def test_report_preview(self, analyzer, admin, gate, clock):
        invoker = AnalysisInvoker(gate, analyzer, clock=clock)

        report = await run_batch(invoker, admin, batch_of("Ann", job="J" * 300))

        assert report.job_description_preview == "J" * 200 + "..."


class TestBatchRequest:
    def test_too_many_candidates(self):
        names = [f"c{i}" for i in range(MAX_BATCH_CANDIDATES + 1)]

        with pytest.raises(ValidationError):
            batch_of(*names)

    def test_empty_batch(self):
        with pytest.raises(ValidationError):
            BatchRequest(job_description="job", candidates=[])
