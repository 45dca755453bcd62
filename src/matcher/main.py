"""
Matcher Service - Main entry point.
Scores a local CV against a job description file, without quota accounting.
"""

import asyncio
import json
from pathlib import Path

import click
from loguru import logger

from shared.errors import UpstreamFailure
from shared.logging_config import setup_logging
from shared.models import MatchAnalysis

from .cv_loader import CVLoader
from .llm_matcher import LLMMatcher


async def match_files(cv_path: Path, job_path: Path) -> MatchAnalysis:
    """Load both documents and run a single analysis."""
    cv_text = CVLoader(cv_path).load()
    job_description = job_path.read_text(encoding="utf-8").strip()
    if not job_description:
        raise click.BadParameter(f"Job description is empty: {job_path}")

    logger.info(f"Matching {cv_path.name} against {job_path.name}")
    return await LLMMatcher().analyze(cv_text, job_description)


@click.command()
@click.option(
    "--cv",
    "cv_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="CV file (.txt, .md or .yaml)",
)
@click.option(
    "--job",
    "job_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Job description text file",
)
@click.option("--json", "as_json", is_flag=True, help="Print the full analysis as JSON")
def main(cv_path: Path, job_path: Path, as_json: bool):
    """CV Matcher - Scores how well a CV fits a job description."""
    setup_logging()

    try:
        analysis = asyncio.run(match_files(cv_path, job_path))
    except UpstreamFailure as e:
        raise click.ClickException(f"{e.detail} ({e})") from e

    if as_json:
        click.echo(json.dumps(analysis.model_dump(by_alias=True, exclude_none=True), indent=2))
        return

    click.echo(f"Score: {analysis.score}/100")
    click.echo(analysis.summary)
    if analysis.matching_skills:
        click.echo(f"Matching: {', '.join(analysis.matching_skills)}")
    if analysis.missing_skills:
        click.echo(f"Missing: {', '.join(analysis.missing_skills)}")


if __name__ == "__main__":
    main()
