"""Tests for the operator CLIs."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from conftest import build_analysis
from matcher import main as matcher_main
from quota import main as quota_main
from shared.errors import UpstreamFailure
from shared.models import QuotaStatus


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(matcher_main, "setup_logging", lambda: None)
    monkeypatch.setattr(quota_main, "setup_logging", lambda: None)


def write_inputs(tmp_path: Path) -> list[str]:
    cv = tmp_path / "cv.md"
    cv.write_text("# Ada\nPython developer", encoding="utf-8")
    job = tmp_path / "job.txt"
    job.write_text("Backend engineer, Python", encoding="utf-8")
    return ["--cv", str(cv), "--job", str(job)]


class TestMatchCommand:
    def test_prints_score_and_summary(self, tmp_path, monkeypatch):
        analyze = AsyncMock(return_value=build_analysis(77))
        monkeypatch.setattr(matcher_main.LLMMatcher, "analyze", analyze)

        result = CliRunner().invoke(matcher_main.main, write_inputs(tmp_path))

        assert result.exit_code == 0, result.output
        assert "Score: 77/100" in result.output
        assert "Missing: Kubernetes" in result.output
        analyze.assert_awaited_once_with("# Ada\nPython developer", "Backend engineer, Python")

    def test_json_output(self, tmp_path, monkeypatch):
        monkeypatch.setattr(matcher_main.LLMMatcher, "analyze", AsyncMock(return_value=build_analysis(77)))

        result = CliRunner().invoke(matcher_main.main, write_inputs(tmp_path) + ["--json"])

        assert result.exit_code == 0, result.output
        assert '"matchingSkills"' in result.output

    def test_upstream_failure_exits_nonzero(self, tmp_path, monkeypatch):
        failure = UpstreamFailure("gateway timeout")
        monkeypatch.setattr(matcher_main.LLMMatcher, "analyze", AsyncMock(side_effect=failure))

        result = CliRunner().invoke(matcher_main.main, write_inputs(tmp_path))

        assert result.exit_code == 1
        assert "gateway timeout" in result.output


class TestQuotaCommand:
    def test_standard_user(self, monkeypatch):
        status = QuotaStatus(limit=1, used=1, remaining=0, is_admin=False, hours_until_reset=5)
        fetch = AsyncMock(return_value=status)
        monkeypatch.setattr(quota_main, "fetch_status", fetch)

        result = CliRunner().invoke(quota_main.main, ["user-1"])

        assert result.exit_code == 0, result.output
        assert "user-1: 1/1 used, 0 remaining" in result.output
        assert "Resets in 5 hour(s)" in result.output
        fetch.assert_awaited_once_with("user-1", None)

    def test_admin_flag(self, monkeypatch):
        status = QuotaStatus(limit=None, used=0, remaining=None, is_admin=True)
        fetch = AsyncMock(return_value=status)
        monkeypatch.setattr(quota_main, "fetch_status", fetch)

        result = CliRunner().invoke(quota_main.main, ["admin-1", "--admin"])

        assert "admin (no quota)" in result.output
        fetch.assert_awaited_once_with("admin-1", True)
