# src/tasks/models.py — v1
"""Structured outputs of each AI task.

Models accept camelCase keys as produced by most models and serialize with
snake_case field names. List fields default to empty so partial chunk output
still validates.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TaskOutput(BaseModel):
    """Base for task outputs: tolerant of camelCase and unknown keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# === JOB PARSING ===


class ParsedJob(TaskOutput):
    """Structured view of a job description."""

    title_suggestion: str | None = None
    company_suggestion: str | None = None
    seniority: str | None = None
    location: str | None = None
    summary: str | None = None
    responsibilities: list[str] = Field(default_factory=list)
    required_skills: list[str] = Field(default_factory=list)
    nice_to_have_skills: list[str] = Field(default_factory=list)
    domain_tags: list[str] = Field(default_factory=list)
    seniority_score: float | None = None
    remote_friendly: bool | None = None

    @field_validator("seniority_score")
    @classmethod
    def validate_seniority_score(cls, v: float | None) -> float | None:
        if v is not None and not 0.0 <= v <= 1.0:
            raise ValueError(f"seniority_score must be between 0.0 and 1.0, got {v}")
        return v


# === PROFILE EXTRACTION ===


class ProfileBasics(TaskOutput):
    name: str | None = None
    headline: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    summary: str | None = None


class ExperienceEntry(TaskOutput):
    title: str | None = None
    company: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    description: str | None = None
    highlights: list[str] = Field(default_factory=list)


class EducationEntry(TaskOutput):
    institution: str | None = None
    degree: str | None = None
    field_of_study: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class ExtractedProfile(TaskOutput):
    """Profile data pulled out of a resume."""

    profile: ProfileBasics = Field(default_factory=ProfileBasics)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    portfolio: list[str] = Field(default_factory=list)


class ExtractedSkills(TaskOutput):
    """Skills mentioned in an experience description."""

    skills: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)


# === GENERATION ===


class ResumeSectionItem(TaskOutput):
    heading: str
    subheading: str | None = None
    bullets: list[str] = Field(default_factory=list)


class ResumeSection(TaskOutput):
    title: str
    items: list[ResumeSectionItem] = Field(default_factory=list)


class ResumeSuggestions(TaskOutput):
    summary: str | None = None
    headline: str | None = None
    sections: list[ResumeSection] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)


class CoverLetter(TaskOutput):
    subject: str | None = None
    greeting: str | None = None
    body_paragraphs: list[str] = Field(default_factory=list)
    closing: str | None = None
    signature: str | None = None


class RewrittenText(TaskOutput):
    text: str


class SummaryOutput(TaskOutput):
    summary: str
    key_points: list[str] = Field(default_factory=list)
