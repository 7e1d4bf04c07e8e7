# src/config/purposes.py — v1
"""Declarative registry of AI task purposes.

Each purpose names its output model, prompt, whether long input is chunked,
how chunk outputs merge, which options change the output (and therefore
the cache key), and its default cache TTL.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

from pydantic import BaseModel

from jobpilot.tasks import prompts
from jobpilot.tasks.models import (
    CoverLetter,
    ExtractedProfile,
    ExtractedSkills,
    ParsedJob,
    ResumeSuggestions,
    RewrittenText,
    SummaryOutput,
)

MergeStrategy = Literal["extraction", "summary"]


@dataclass(frozen=True)
class PurposeSpec:
    """Static description of one AI task."""

    name: str
    output_model: type[BaseModel]
    system_prompt: str
    chunked: bool = False
    merge_strategy: MergeStrategy | None = None
    option_keys: tuple[str, ...] = ()
    ttl_days: int | None = 30

    @property
    def ttl(self) -> timedelta | None:
        return timedelta(days=self.ttl_days) if self.ttl_days is not None else None

    @property
    def schema_name(self) -> str:
        """Tag stored with cache payloads so readers know the payload shape."""
        return f"{self.output_model.__name__}.v1"


PARSE_JOB = "parse_job"
EXTRACT_PROFILE_FROM_RESUME = "extract_profile_from_resume"
EXTRACT_SKILLS_FROM_EXPERIENCE = "extract_skills_from_experience"
GENERATE_RESUME = "generate_resume"
GENERATE_COVER_LETTER = "generate_cover_letter"
REWRITE_TEXT = "rewrite_text"
GENERATE_SUMMARY = "generate_summary"

PURPOSES: dict[str, PurposeSpec] = {
    PARSE_JOB: PurposeSpec(
        name=PARSE_JOB,
        output_model=ParsedJob,
        system_prompt=prompts.JOB_PARSING_SYSTEM,
        chunked=True,
        merge_strategy="extraction",
        ttl_days=90,
    ),
    EXTRACT_PROFILE_FROM_RESUME: PurposeSpec(
        name=EXTRACT_PROFILE_FROM_RESUME,
        output_model=ExtractedProfile,
        system_prompt=prompts.PROFILE_EXTRACTION_SYSTEM,
        chunked=True,
        merge_strategy="extraction",
        ttl_days=90,
    ),
    EXTRACT_SKILLS_FROM_EXPERIENCE: PurposeSpec(
        name=EXTRACT_SKILLS_FROM_EXPERIENCE,
        output_model=ExtractedSkills,
        system_prompt=prompts.SKILL_EXTRACTION_SYSTEM,
        chunked=True,
        merge_strategy="extraction",
        ttl_days=90,
    ),
    GENERATE_RESUME: PurposeSpec(
        name=GENERATE_RESUME,
        output_model=ResumeSuggestions,
        system_prompt=prompts.RESUME_SYSTEM,
        option_keys=("profile", "tone", "length", "focus"),
        ttl_days=30,
    ),
    GENERATE_COVER_LETTER: PurposeSpec(
        name=GENERATE_COVER_LETTER,
        output_model=CoverLetter,
        system_prompt=prompts.COVER_LETTER_SYSTEM,
        option_keys=("profile", "company_name", "tone", "length", "audience"),
        ttl_days=30,
    ),
    REWRITE_TEXT: PurposeSpec(
        name=REWRITE_TEXT,
        output_model=RewrittenText,
        system_prompt=prompts.REWRITE_SYSTEM,
        option_keys=("tone",),
        ttl_days=30,
    ),
    GENERATE_SUMMARY: PurposeSpec(
        name=GENERATE_SUMMARY,
        output_model=SummaryOutput,
        system_prompt=prompts.SUMMARY_SYSTEM,
        chunked=True,
        merge_strategy="summary",
        ttl_days=30,
    ),
}


class UnknownPurposeError(ValueError):
    """Raised when a purpose is not registered."""


def get_purpose(name: str) -> PurposeSpec:
    """Look up a registered purpose.

    Raises:
        UnknownPurposeError: If ``name`` is not registered.
    """
    try:
        return PURPOSES[name]
    except KeyError:
        raise UnknownPurposeError(
            f"Unknown purpose: {name!r}. Available: {', '.join(sorted(PURPOSES))}"
        ) from None
