"""
LLM-based cover letter writer using OpenAI.
"""

import re
from typing import Optional

from loguru import logger
from openai import APIError, AsyncOpenAI

from matcher.llm_matcher import build_client, translate_openai_error
from shared.config import Settings, get_settings
from shared.errors import UpstreamFailure
from shared.models import (
    CoverLetter,
    CoverLetterRequest,
    ExplainLetterRequest,
    LetterExplanation,
    RefineLetterRequest,
)

SWEDISH_INDICATORS = [
    "och", "att", "är", "på", "för", "med", "som", "av", "till", "vi",
    "ansökan", "kunskap", "erfarenhet", "arbete", "företag",
]

LANGUAGE_NAMES = {"sv": "Swedish", "en": "English"}

MAX_WORDS = 300


def detect_language(job_description: str, cv_text: str) -> str:
    """Guess whether a job application is Swedish or English."""
    text = f"{job_description} {cv_text}".lower()
    swedish_count = sum(
        len(re.findall(rf"\b{re.escape(word)}\b", text)) for word in SWEDISH_INDICATORS
    )
    return "sv" if swedish_count > 5 else "en"


def resolve_language(request: CoverLetterRequest) -> str:
    if request.language_pref == "auto":
        return detect_language(request.job_description, request.cv_text)
    return request.language_pref


class CoverLetterWriter:
    """Writes, revises and explains cover letters."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            self._client = build_client(self.settings)
        return self._client

    async def generate(self, request: CoverLetterRequest) -> CoverLetter:
        """Write a new letter for the candidate and job in ``request``."""
        language = resolve_language(request)
        prompt = f"""{self._context(request, language)}

## Instructions:
1. At most {MAX_WORDS} words
2. Natural, confident tone matching "{request.tone}"
3. Mention 2-3 skills that appear in both the CV and the job description
4. Refer to ONE concrete experience or project from the CV and its result
5. Never invent schools, employers or places the CV does not mention
6. Avoid empty filler phrases
7. {self._language_rule(language)}
8. Finish with a short, polite closing suited to the language
9. No placeholders such as [Company Name] and no markdown

Output ONLY the letter text with paragraph breaks, nothing else."""

        text = await self._complete(prompt, request)
        logger.info(f"Generated {language} cover letter for {request.job_title} at {request.company}")
        return CoverLetter(language=language, tone=request.tone, cover_letter_text=text)

    async def refine(self, request: RefineLetterRequest) -> CoverLetter:
        """Revise ``request.current_letter`` keeping its language and tone."""
        language = resolve_language(request)
        instructions = request.instructions or "Tighten the wording and strengthen the match to the job."
        prompt = f"""{self._context(request, language)}

## Current letter:
\"\"\"{request.current_letter}\"\"\"

## Requested changes:
{instructions}

## Instructions:
1. Apply the requested changes and keep everything else that works
2. Keep the tone "{request.tone}" and at most {MAX_WORDS} words
3. Never invent facts that are not in the CV
4. {self._language_rule(language)}
5. No placeholders and no markdown

Output ONLY the revised letter text, nothing else."""

        text = await self._complete(prompt, request)
        logger.info(f"Refined cover letter for {request.job_title} at {request.company}")
        return CoverLetter(language=language, tone=request.tone, cover_letter_text=text)

    async def explain(self, request: ExplainLetterRequest) -> LetterExplanation:
        """Explain how the letter matches the job and what could be better."""
        language = resolve_language(request)
        prompt = f"""{self._context(request, language)}

## Cover letter:
\"\"\"{request.current_letter}\"\"\"

## Instructions:
1. Write the explanation in {LANGUAGE_NAMES[language]}
2. Start with one short paragraph on the overall quality of the letter
3. Then 3-5 bullet points under "Styrkor / Strengths"
4. Then 2-3 bullet points under "Förbättringar / Improvements"
5. Do not rewrite or change the letter
6. Be concise and professional, plain text only"""

        explanation = await self._complete(prompt, request)
        logger.info(f"Explained cover letter for {request.job_title} at {request.company}")
        return LetterExplanation(explanation=explanation, language=language)

    def _context(self, request: CoverLetterRequest, language: str) -> str:
        skills = ", ".join(request.matching_skills) or "N/A"
        return f"""## Context:
**Candidate:** {request.candidate_name}
**Position:** {request.job_title}
**Company:** {request.company}
**Language:** {language}
**Tone:** {request.tone}

## CV:
\"\"\"{request.cv_text}\"\"\"

## Job Description:
\"\"\"{request.job_description}\"\"\"

## Match summary:
{request.match_summary or 'N/A'}

## Overlapping skills:
{skills}"""

    @staticmethod
    def _language_rule(language: str) -> str:
        if language == "sv":
            return "Write in correct business Swedish with natural sentence flow"
        return "Write in natural British English"

    async def _complete(self, prompt: str, request: CoverLetterRequest) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "You are a Swedish and English career writer who produces "
                            "realistic, well-structured cover letters grounded in the "
                            "candidate's actual background."
                        ),
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=self.settings.llm_temperature_letters,
                max_tokens=1500,
            )
        except APIError as e:
            failure = translate_openai_error(e)
            logger.error(f"Cover letter request failed for {request.candidate_name}: {failure}")
            raise failure from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.error("Empty cover letter response from LLM")
            raise UpstreamFailure("Empty completion from LLM")
        return content.strip()
