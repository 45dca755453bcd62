"""
CV loader for local analyses.
Reads a CV as plain text, or renders a structured YAML CV into LLM context.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

TEXT_SUFFIXES = {".txt", ".md", ".text", ""}
YAML_SUFFIXES = {".yaml", ".yml"}


@dataclass
class ExperienceEntry:
    """Work experience entry."""

    company: str = ""
    title: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    highlights: list[str] = field(default_factory=list)


@dataclass
class CVData:
    """Structured CV."""

    name: str = ""
    headline: str = ""
    location: str = ""
    summary: str = ""
    skills: dict[str, list[str]] = field(default_factory=dict)
    experience: list[ExperienceEntry] = field(default_factory=list)
    education: list[dict] = field(default_factory=list)
    languages: list[str] = field(default_factory=list)


class CVLoader:
    """Loads a CV file and produces the text sent to the matcher."""

    def __init__(self, cv_path: Optional[Path] = None):
        self.cv_path = cv_path
        self._text: Optional[str] = None

    def load(self, path: Optional[Path] = None) -> str:
        """Load the CV and return its context text."""
        path = path or self.cv_path
        if not path:
            raise ValueError("No CV path specified")

        if not path.exists():
            raise FileNotFoundError(f"CV file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in YAML_SUFFIXES:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Structured CV must be a mapping: {path}")
            text = self.to_context_string(self.parse(data))
        elif suffix in TEXT_SUFFIXES:
            text = path.read_text(encoding="utf-8")
        else:
            raise ValueError(f"Unsupported CV format '{suffix}', use .txt, .md or .yaml")

        if not text.strip():
            raise ValueError(f"CV file is empty: {path}")

        self._text = text.strip()
        logger.info(f"Loaded CV from {path.name} ({len(self._text)} chars)")
        return self._text

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = self.load()
        return self._text

    @staticmethod
    def parse(data: dict) -> CVData:
        """Build CVData from a YAML mapping."""
        personal = data.get("personal") or {}

        skills: dict[str, list[str]] = {}
        for category, values in (data.get("skills") or {}).items():
            if isinstance(values, str):
                values = [v.strip() for v in values.split(",") if v.strip()]
            skills[str(category)] = [str(v) for v in values]

        experience = [
            ExperienceEntry(
                company=exp.get("company", ""),
                title=exp.get("title", ""),
                location=exp.get("location", ""),
                start_date=str(exp.get("start_date") or ""),
                end_date=str(exp.get("end_date") or ""),
                highlights=exp.get("highlights") or [],
            )
            for exp in data.get("experience") or []
        ]

        return CVData(
            name=personal.get("name", ""),
            headline=personal.get("headline", ""),
            location=personal.get("location", ""),
            summary=data.get("summary") or "",
            skills=skills,
            experience=experience,
            education=data.get("education") or [],
            languages=[str(lang) for lang in personal.get("languages") or []],
        )

    @staticmethod
    def to_context_string(cv: CVData) -> str:
        """Convert structured CV to text for LLM context."""
        sections = []

        if cv.name:
            sections.append(f"# {cv.name}")
        if cv.headline:
            sections.append(cv.headline)
        if cv.location:
            sections.append(f"Location: {cv.location}")
        if cv.languages:
            sections.append(f"Languages: {', '.join(cv.languages)}")

        if cv.summary:
            sections.append(f"\n## Summary\n{cv.summary.strip()}")

        if cv.skills:
            sections.append("\n## Skills")
            for category, skills in cv.skills.items():
                category_name = category.replace("_", " ").title()
                sections.append(f"{category_name}: {', '.join(skills)}")

        if cv.experience:
            sections.append("\n## Experience")
            for exp in cv.experience:
                sections.append(f"\n### {exp.title} at {exp.company}")
                if exp.start_date:
                    sections.append(f"Period: {exp.start_date} - {exp.end_date or 'present'}")
                if exp.location:
                    sections.append(f"Location: {exp.location}")
                for highlight in exp.highlights:
                    sections.append(f"- {highlight}")

        if cv.education:
            sections.append("\n## Education")
            for edu in cv.education:
                edu_line = f"- {edu.get('degree', '')} - {edu.get('institution', '')}"
                if edu.get("years"):
                    edu_line += f" ({edu['years']})"
                sections.append(edu_line)

        return "\n".join(sections)
