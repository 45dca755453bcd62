"""
Pydantic models for principals, usage events, analyses and letters.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Principal role."""

    STANDARD = "standard"
    ADMIN = "admin"  # Exempt from quota accounting


class Principal(BaseModel):
    """The requesting user, as resolved from a bearer token."""

    id: str = Field(..., min_length=1, description="Stable identity-provider user ID")
    role: Role = Field(default=Role.STANDARD)
    email: Optional[str] = Field(default=None)
    access_token: Optional[str] = Field(default=None, repr=False, exclude=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class UsageEvent(BaseModel):
    """One counted analysis in the quota ledger."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    created_at: datetime


# -------------------------------------------------------------------------
# Analysis
# -------------------------------------------------------------------------

Language = Literal["en", "sv", "ar"]


class SkillWeights(BaseModel):
    must: float = 0.0
    should: float = 0.0
    nice_bonus: float = 0.0


class Evidence(BaseModel):
    quote: str
    source: str


class StarStory(BaseModel):
    """Situation / Task / Action / Result."""

    s: str
    t: str
    a: str
    r: str


class Tip(BaseModel):
    text: str
    estimated_gain: Literal["low", "medium", "high"] = "medium"


class FlaggedPhrase(BaseModel):
    phrase: str
    reason: str
    alt: str


class BiasAlert(BaseModel):
    flagged: list[FlaggedPhrase] = Field(default_factory=list)


class MatchAnalysis(BaseModel):
    """Structured CV/job match returned by the LLM collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    score: int = Field(..., ge=0, le=100, description="Match score from 0-100")
    confidence_score: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Model confidence from 0.0-1.0"
    )
    summary: str = Field(..., description="Brief summary of why the candidate is a good fit")
    matching_skills: list[str] = Field(
        default_factory=list,
        alias="matchingSkills",
        description="Skills that match between CV and job",
    )
    missing_skills: list[str] = Field(
        default_factory=list,
        alias="missingSkills",
        description="Skills in the job description but not in the CV",
    )
    extra_skills: list[str] = Field(
        default_factory=list,
        alias="extraSkills",
        description="Relevant candidate skills not mentioned in the job",
    )
    weights: Optional[SkillWeights] = None
    evidence: Optional[list[Evidence]] = None
    star: Optional[list[StarStory]] = None
    tips: Optional[list[Tip]] = None
    bias_alert: Optional[BiasAlert] = None

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("score must be finite")
        score = int(round(value))
        if not 0 <= score <= 100:
            logger.warning(f"Invalid score {value}, clamping to range 0-100")
            score = max(0, min(100, score))
        return score

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("confidence_score must be finite")
        if not 0.0 <= value <= 1.0:
            logger.warning(f"Invalid confidence {value}, clamping to range 0-1")
            return max(0.0, min(1.0, float(value)))
        return value


class AnalysisRequest(BaseModel):
    """Body of POST /analyze."""

    cv_text: str = Field(..., min_length=1)
    job_description: str = Field(..., min_length=1)
    candidate_name: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    language: Language = "en"

    @field_validator("cv_text", "job_description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class AnalysisResult(MatchAnalysis):
    """Collaborator output enriched with request metadata."""

    candidate_name: str = "Candidate"
    job_title: str = "Position"
    company: str = "Company"
    created_at_iso: str
    language: Language = "en"

    @classmethod
    def from_analysis(
        cls,
        analysis: MatchAnalysis,
        request: AnalysisRequest,
        created_at: datetime,
    ) -> "AnalysisResult":
        return cls(
            **analysis.model_dump(),
            candidate_name=request.candidate_name or "Candidate",
            job_title=request.job_title or "Position",
            company=request.company or "Company",
            created_at_iso=created_at.isoformat(),
            language=request.language,
        )


# -------------------------------------------------------------------------
# Employer batch dashboard
# -------------------------------------------------------------------------

MAX_BATCH_CANDIDATES = 20


class CandidateInput(BaseModel):
    name: str = Field(..., min_length=1)
    cv_text: str = Field(..., min_length=1)


class BatchRequest(BaseModel):
    job_description: str = Field(..., min_length=1)
    candidates: list[CandidateInput] = Field(
        ..., min_length=1, max_length=MAX_BATCH_CANDIDATES
    )
    job_title: Optional[str] = None
    company: Optional[str] = None
    language: Language = "en"


class SkippedCandidate(BaseModel):
    name: str
    reason: str


class BatchReport(BaseModel):
    job_description_preview: str
    candidates: list[AnalysisResult] = Field(default_factory=list)
    skipped: list[SkippedCandidate] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


# -------------------------------------------------------------------------
# Cover letters
# -------------------------------------------------------------------------

Tone = Literal["professional", "friendly", "concise", "story"]
LanguagePref = Literal["auto", "sv", "en"]


class CoverLetterRequest(BaseModel):
    candidate_name: str = Field(default="Candidate")
    cv_text: str = Field(..., min_length=1)
    job_description: str = Field(..., min_length=1)
    match_summary: Optional[str] = None
    matching_skills: list[str] = Field(default_factory=list)
    language_pref: LanguagePref = "auto"
    tone: Tone = "professional"
    job_title: str = Field(default="Position")
    company: str = Field(default="Company")


class RefineLetterRequest(CoverLetterRequest):
    current_letter: str = Field(..., min_length=1)
    instructions: Optional[str] = Field(default=None, max_length=1000)


class ExplainLetterRequest(CoverLetterRequest):
    current_letter: str = Field(..., min_length=1)


class CoverLetter(BaseModel):
    language: str
    tone: Tone
    cover_letter_text: str


class LetterExplanation(BaseModel):
    explanation: str
    language: str


# -------------------------------------------------------------------------
# BaaS-backed records
# -------------------------------------------------------------------------


class FeedbackStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


class FeedbackSubmission(BaseModel):
    message: str = Field(..., max_length=2000)
    email: Optional[str] = Field(default=None, max_length=255)

    @field_validator("message")
    @classmethod
    def _strip_message(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter your feedback")
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value


class Feedback(BaseModel):
    id: str
    message: str
    email: Optional[str] = None
    user_id: Optional[str] = None
    status: FeedbackStatus = FeedbackStatus.NEW
    created_at: datetime


class FeedbackStatusUpdate(BaseModel):
    status: FeedbackStatus


class SavedLetterCreate(BaseModel):
    job_title: str = Field(default="Position")
    company: str = Field(default="Company")
    letter_text: str = Field(..., min_length=1)
    tone: Tone = "professional"
    language: str = "en"


class SavedLetter(SavedLetterCreate):
    id: str
    user_id: str
    created_at: datetime


class UserRole(BaseModel):
    id: str
    user_id: str
    role: Role
    created_at: datetime


class QuotaStatus(BaseModel):
    limit: Optional[int]
    used: int
    remaining: Optional[int]
    is_admin: bool
    hours_until_reset: int = 0
    last_analysis_at: Optional[datetime] = None
