"""Pytest fixtures for MatchAI tests."""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from quota.admission import QuotaGate
from quota.ledger import InMemoryQuotaLedger
from shared.config import Settings
from shared.database import BaaSClient
from shared.models import AnalysisRequest, MatchAnalysis, Principal, Role

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeAnalyzer:
    """Stands in for LLMMatcher; ``queue`` items are returned or raised in order."""

    def __init__(self, analysis: MatchAnalysis):
        self.analysis = analysis
        self.queue: list = []
        self.calls: list[tuple[str, str]] = []

    async def analyze(self, cv_text: str, job_description: str) -> MatchAnalysis:
        self.calls.append((cv_text, job_description))
        if self.queue:
            item = self.queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return self.analysis


def build_analysis(score: int = 80, **overrides) -> MatchAnalysis:
    payload = {
        "score": score,
        "confidence_score": 0.9,
        "summary": "Strong backend profile with relevant Python experience.",
        "matchingSkills": ["Python", "FastAPI"],
        "missingSkills": ["Kubernetes"],
        "extraSkills": ["Rust"],
    }
    payload.update(overrides)
    return MatchAnalysis.model_validate(payload)


def completion(content: Optional[str] = None, arguments: Optional[str] = None):
    """Shape of an openai ChatCompletion as far as the adapters read it."""
    tool_calls = None
    if arguments is not None:
        tool_calls = [SimpleNamespace(function=SimpleNamespace(name="provide_match_analysis", arguments=arguments))]
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def tool_completion(payload: dict):
    return completion(arguments=json.dumps(payload))


def mock_openai(response=None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


def openai_request() -> httpx.Request:
    return httpx.Request("POST", "https://llm.test/v1/chat/completions")


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's .env file."""
    return Settings(
        _env_file=None,
        supabase_url="http://baas.test",
        supabase_anon_key="anon-key",
        supabase_service_key="service-key",
        openai_api_key="sk-test",
        openai_model="test-model",
        quota_daily_limit=1,
        quota_window_hours=24,
        log_format="text",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> InMemoryQuotaLedger:
    return InMemoryQuotaLedger(clock=clock)


@pytest.fixture
def gate(ledger: InMemoryQuotaLedger) -> QuotaGate:
    return QuotaGate(ledger, limit=1)


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer(build_analysis())


@pytest.fixture
def user() -> Principal:
    return Principal(id="user-1", role=Role.STANDARD)


@pytest.fixture
def admin() -> Principal:
    return Principal(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def analysis_request() -> AnalysisRequest:
    return AnalysisRequest(
        cv_text="Senior Python developer, 8 years with FastAPI and PostgreSQL.",
        job_description="We need a backend engineer with Python and Kubernetes.",
    )


@pytest.fixture
def baas_factory(settings: Settings) -> Callable[[Callable[[httpx.Request], httpx.Response]], BaaSClient]:
    """Build a BaaSClient whose HTTP traffic goes to ``handler``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> BaaSClient:
        return BaaSClient(settings, transport=httpx.MockTransport(handler))

    return factory
