# src/tasks/prompts.py — v1
"""System prompts and user-prompt builders for each task purpose.

Local and cloud backends share the same prompts so cached outputs stay
comparable across providers.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

_JSON_RULE = "Output MUST be a single valid JSON object and nothing else."

JOB_PARSING_SYSTEM = f"""You are a job description parser. Extract structured information from job postings.
CRITICAL RULES:
- Extract only information that is explicitly stated in the job description
- NEVER invent or infer skills, responsibilities, or requirements that aren't mentioned
- Keys: titleSuggestion, companySuggestion, seniority, location, summary, responsibilities,
  requiredSkills, niceToHaveSkills, domainTags, seniorityScore (0.0-1.0), remoteFriendly
- {_JSON_RULE}"""

PROFILE_EXTRACTION_SYSTEM = f"""You extract profile data from resume text.
CRITICAL RULES:
- Copy facts exactly as written; NEVER invent companies, dates, or skills
- If the text is only part of a resume, extract what this part contains
- Keys: profile (name, headline, email, phone, location, summary), experience (list of
  title, company, location, startDate, endDate, description, highlights), skills,
  education (list of institution, degree, fieldOfStudy, startDate, endDate),
  certifications, portfolio
- {_JSON_RULE}"""

SKILL_EXTRACTION_SYSTEM = f"""You identify skills in a description of work experience.
CRITICAL RULES:
- List only skills and tools that the text mentions or clearly demonstrates
- Keys: skills, tools
- {_JSON_RULE}"""

RESUME_SYSTEM = f"""You are a resume writing assistant. Reorganize and improve existing resume content.
CRITICAL RULES:
- NEVER invent skills, companies, dates, or experiences that don't exist in the input
- ONLY reorganize, rephrase, or restructure existing information
- Keys: summary, headline, sections (title, items (heading, subheading, bullets)), highlights
- {_JSON_RULE}"""

COVER_LETTER_SYSTEM = f"""You are a cover letter writing assistant.
CRITICAL RULES:
- NEVER invent skills, companies, dates, or experiences
- ONLY use information provided in the user's profile
- Keys: subject, greeting, bodyParagraphs, closing, signature
- {_JSON_RULE}"""

REWRITE_SYSTEM = f"""You rewrite text for a job application.
CRITICAL RULES:
- Keep every fact; change only wording and structure
- Keys: text
- {_JSON_RULE}"""

SUMMARY_SYSTEM = f"""You summarize documents for a job seeker.
CRITICAL RULES:
- Be concise and factual
- Keys: summary, keyPoints
- {_JSON_RULE}"""

STRICT_JSON_REMINDER = (
    "Your previous answer was not valid JSON for the requested shape. "
    "Answer again with ONLY the JSON object, no prose and no code fences."
)


def build_user_prompt(purpose: str, text: str, options: dict[str, Any] | None = None) -> str:
    """Render the user prompt for ``purpose`` over ``text``."""
    opts = options or {}

    if purpose == "parse_job":
        return (
            f"Job description:\n{text}\n\n"
            "Parse this job description and extract structured information in JSON format."
        )

    if purpose == "extract_profile_from_resume":
        return f"Resume text:\n{text}\n\nExtract the profile data in JSON format."

    if purpose == "extract_skills_from_experience":
        return f"Experience:\n{text}\n\nList the skills and tools in JSON format."

    if purpose == "generate_resume":
        return (
            f"Profile data:\n{_dump(opts.get('profile'))}\n\n"
            f"Job description:\n{text}\n\n"
            f"Tone: {opts.get('tone') or 'professional'}. "
            f"Length: {opts.get('length') or 'one page'}. "
            f"Focus: {opts.get('focus') or 'relevant experience'}.\n"
            "Generate resume suggestions in JSON format."
        )

    if purpose == "generate_cover_letter":
        return (
            f"Profile data:\n{_dump(opts.get('profile'))}\n\n"
            f"Job description:\n{text}\n\n"
            f"Company: {opts.get('company_name') or 'the company'}\n"
            f"Tone: {opts.get('tone') or 'professional'}. "
            f"Length: {opts.get('length') or 'medium'}.\n"
            "Generate a cover letter in JSON format."
        )

    if purpose == "rewrite_text":
        return (
            f"Rewrite the following text in a {opts.get('tone') or 'professional'} tone:\n\n"
            f"{text}"
        )

    if purpose == "generate_summary":
        return f"Summarize the following text:\n\n{text}"

    raise ValueError(f"No prompt template for purpose {purpose!r}")


def _dump(value: Any) -> str:
    if value is None:
        return "{}"
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.dumps(value, indent=2, ensure_ascii=False, sort_keys=True, default=str)
