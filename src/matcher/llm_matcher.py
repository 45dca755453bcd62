"""
LLM-based CV / job description matching using an OpenAI-compatible API.
"""

import json
from typing import Optional

from loguru import logger
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI
from pydantic import ValidationError

from shared.config import Settings, get_settings
from shared.errors import UpstreamFailure
from shared.models import MatchAnalysis


SYSTEM_PROMPT = """You are an expert HR and recruitment AI assistant. Your task is to analyze CVs and job descriptions to provide accurate match scores and insights.

Analyze the provided CV and job description, then return:
1. score: A number between 0-100 representing how well the candidate matches the job
2. confidence_score: How confident you are in the score, from 0.0 to 1.0
3. summary: A brief summary (2-3 sentences) of why the candidate is a good fit
4. matchingSkills: Skills that match between CV and job description
5. missingSkills: Skills mentioned in the job description but not in the CV
6. extraSkills: Relevant skills the candidate has that aren't mentioned in the job description
7. weights: How much must-have, should-have and nice-to-have requirements counted (0-1 each)
8. evidence: Short verbatim quotes from the CV or job description backing the score
9. star: Up to 3 Situation/Task/Action/Result stories from the CV relevant to this job
10. tips: Concrete CV improvements, each with an estimated gain (low, medium, high)
11. bias_alert: Phrases in the job description that may discourage applicants, with a reason and a neutral alternative

Be objective, professional, and focus on actual qualifications and requirements."""


_STRING_ARRAY = {"type": "array", "items": {"type": "string"}}

MATCH_ANALYSIS_TOOL = {
    "type": "function",
    "function": {
        "name": "provide_match_analysis",
        "description": "Return the CV-job match analysis",
        "parameters": {
            "type": "object",
            "properties": {
                "score": {"type": "number", "description": "Match score from 0-100"},
                "confidence_score": {
                    "type": "number",
                    "description": "Confidence in the score from 0.0-1.0",
                },
                "summary": {
                    "type": "string",
                    "description": "Brief summary of why candidate is a good fit",
                },
                "matchingSkills": {**_STRING_ARRAY, "description": "Skills that match between CV and job"},
                "missingSkills": {**_STRING_ARRAY, "description": "Skills in job description but not in CV"},
                "extraSkills": {
                    **_STRING_ARRAY,
                    "description": "Relevant skills candidate has not mentioned in job",
                },
                "weights": {
                    "type": "object",
                    "properties": {
                        "must": {"type": "number"},
                        "should": {"type": "number"},
                        "nice_bonus": {"type": "number"},
                    },
                },
                "evidence": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "quote": {"type": "string"},
                            "source": {"type": "string", "enum": ["cv", "job"]},
                        },
                        "required": ["quote", "source"],
                    },
                },
                "star": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {k: {"type": "string"} for k in ("s", "t", "a", "r")},
                        "required": ["s", "t", "a", "r"],
                    },
                },
                "tips": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "text": {"type": "string"},
                            "estimated_gain": {"type": "string", "enum": ["low", "medium", "high"]},
                        },
                        "required": ["text", "estimated_gain"],
                    },
                },
                "bias_alert": {
                    "type": "object",
                    "properties": {
                        "flagged": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "phrase": {"type": "string"},
                                    "reason": {"type": "string"},
                                    "alt": {"type": "string"},
                                },
                                "required": ["phrase", "reason", "alt"],
                            },
                        }
                    },
                },
            },
            "required": ["score", "summary", "matchingSkills", "missingSkills", "extraSkills"],
        },
    },
}


def translate_openai_error(e: Exception) -> UpstreamFailure:
    """Map an OpenAI client exception onto UpstreamFailure."""
    if isinstance(e, APITimeoutError):
        return UpstreamFailure(f"LLM request timed out: {e}")
    if isinstance(e, APIConnectionError):
        return UpstreamFailure(f"LLM connection failed: {e}")
    if isinstance(e, APIStatusError):
        return UpstreamFailure(
            f"LLM gateway returned {e.status_code}: {e.message}",
            upstream_status=e.status_code,
        )
    return UpstreamFailure(f"LLM request failed: {e}")


def build_client(settings: Settings) -> AsyncOpenAI:
    """OpenAI client with the configured timeout and no automatic retries."""
    return AsyncOpenAI(
        api_key=settings.openai_api_key.get_secret_value(),
        base_url=settings.openai_base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )


class LLMMatcher:
    """Scores a CV against a job description using an LLM tool call."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            self._client = build_client(self.settings)
        return self._client

    async def analyze(self, cv_text: str, job_description: str) -> MatchAnalysis:
        """
        Match a CV against a job description.

        Returns:
            Validated MatchAnalysis

        Raises:
            UpstreamFailure: on transport errors, non-2xx answers or schema mismatch
        """
        user_prompt = f"""Job Description:
{job_description}

Candidate CV:
{cv_text}

Please analyze this match and provide the results in the exact JSON format specified."""

        try:
            response = await self.client.chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.llm_temperature_analysis,
                tools=[MATCH_ANALYSIS_TOOL],
                tool_choice={"type": "function", "function": {"name": "provide_match_analysis"}},
            )
        except APIError as e:
            failure = translate_openai_error(e)
            logger.error(f"LLM matching failed: {failure}")
            raise failure from e

        analysis = self._parse_response(response)
        logger.info(f"Match analysis complete: score={analysis.score}")
        return analysis

    def _parse_response(self, response) -> MatchAnalysis:
        """Extract and validate the provide_match_analysis tool call."""
        choices = getattr(response, "choices", None) or []
        message = choices[0].message if choices else None
        tool_calls = getattr(message, "tool_calls", None) or []
        if not tool_calls:
            logger.error("No tool call in LLM response")
            raise UpstreamFailure("No tool call in LLM response")

        arguments = tool_calls[0].function.arguments
        try:
            payload = json.loads(arguments)
        except (TypeError, json.JSONDecodeError) as e:
            logger.error(f"Failed to parse LLM response: {e}")
            raise UpstreamFailure(f"JSON parse error: {e}") from e

        try:
            return MatchAnalysis.model_validate(payload)
        except ValidationError as e:
            logger.error(f"LLM response does not match schema: {e.error_count()} error(s)")
            raise UpstreamFailure(f"Schema mismatch: {e}") from e
