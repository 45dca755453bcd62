"""
Employer dashboard: rank several candidates against one job posting.
"""

from loguru import logger

from shared.errors import RateLimited, UpstreamFailure
from shared.models import (
    AnalysisRequest,
    BatchReport,
    BatchRequest,
    Principal,
    SkippedCandidate,
)

from .invoker import AnalysisInvoker

PREVIEW_LENGTH = 200


def preview(job_description: str) -> str:
    if len(job_description) <= PREVIEW_LENGTH:
        return job_description
    return job_description[:PREVIEW_LENGTH] + "..."


async def run_batch(
    invoker: AnalysisInvoker,
    principal: Principal,
    batch: BatchRequest,
) -> BatchReport:
    """
    Analyse every candidate sequentially against the same job.

    An upstream failure skips that candidate only. Hitting the quota stops
    the batch; if nothing was analysed the RateLimited error propagates.
    """
    report = BatchReport(job_description_preview=preview(batch.job_description))

    for i, candidate in enumerate(batch.candidates):
        request = AnalysisRequest(
            cv_text=candidate.cv_text,
            job_description=batch.job_description,
            candidate_name=candidate.name,
            job_title=batch.job_title,
            company=batch.company,
            language=batch.language,
        )
        try:
            result = await invoker.run_analysis(principal, request)
        except UpstreamFailure as e:
            logger.error(f"Error analyzing {candidate.name}: {e}")
            report.skipped.append(SkippedCandidate(name=candidate.name, reason=e.error))
            continue
        except RateLimited:
            if not report.candidates:
                raise
            remaining = batch.candidates[i:]
            logger.info(f"Quota reached, skipping {len(remaining)} remaining candidate(s)")
            report.skipped.extend(
                SkippedCandidate(name=c.name, reason=RateLimited.error) for c in remaining
            )
            break

        report.candidates.append(result)

    report.candidates.sort(key=lambda r: r.score, reverse=True)
    logger.info(
        f"Batch complete: {len(report.candidates)} analysed, {len(report.skipped)} skipped"
    )
    return report
