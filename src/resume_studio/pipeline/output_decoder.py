"""Turns the agent's flattened tailoring answer into a TailoredResume.

The agent is asked for a flat object: contact fields as siblings, skills as
two string arrays and the experience, education and project arrays as
strings holding JSON. ``decode`` reverses that and never raises; anything
missing or malformed falls back to an empty value. ``flatten`` produces the
same flat shape from a TailoredResume, so ``decode(flatten(r)) == r`` for
any decoded ``r``.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from resume_studio.models.agent import ObjectAnswer, OtherAnswer, TextAnswer, raw_answer_from
from resume_studio.models.profile import (
    ContactInfo,
    EducationEntry,
    ExperienceEntry,
    ProjectEntry,
    SkillCategory,
    SkillsData,
)
from resume_studio.models.resume import ChangeSummary, TailoredResume
from resume_studio.utils.dates import is_current_marker
from resume_studio.utils.json_parser import extract_json, json_list_or_none

logger = logging.getLogger(__name__)

TECHNICAL_SKILLS = "Technical Skills"
FRAMEWORKS_AND_TOOLS = "Frameworks & Tools"

CONTACT_FIELDS = ("name", "email", "phone", "location", "linkedin", "github", "website")

TAILORED_RESUME_SCHEMA: dict[str, Any] = {
    "type": "object",
    "title": "TailoredResume",
    "properties": {
        "name": {"type": "string", "description": "Full name"},
        "email": {"type": "string", "description": "Email address"},
        "phone": {"type": "string", "description": "Phone number"},
        "location": {"type": "string", "description": "Location"},
        "linkedin": {"type": "string", "description": "LinkedIn URL"},
        "github": {"type": "string", "description": "GitHub URL"},
        "website": {"type": "string", "description": "Personal website"},
        "professionalSummary": {
            "type": "string",
            "description": "2-3 sentence professional summary tailored to the job",
        },
        "experienceJson": {
            "type": "string",
            "description": (
                "JSON array of experience objects with company, position, "
                "location, startDate, endDate, bullets"
            ),
        },
        "educationJson": {
            "type": "string",
            "description": (
                "JSON array of education objects with institution, degree, "
                "field, location, endDate, gpa, highlights"
            ),
        },
        "projectsJson": {
            "type": "string",
            "description": "JSON array of project objects with name, description, technologies, bullets",
        },
        "technicalSkills": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Technical skills",
        },
        "frameworksAndTools": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Frameworks and tools",
        },
        "keyImprovements": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Key improvements made to the resume",
        },
        "keywordsAdded": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Keywords from job posting incorporated",
        },
        "matchScore": {"type": "integer", "description": "ATS match score from 0-100"},
    },
    "required": ["name", "email", "professionalSummary", "experienceJson", "matchScore"],
    "additionalProperties": False,
}


# --- scalar coercion ---


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _opt_text(value: Any) -> str | None:
    return _text(value) or None


def _end_date(value: Any) -> str | None:
    text = _text(value)
    if not text or is_current_marker(text):
        return None
    return text


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [t for t in (_text(v) for v in value) if t]


def _technologies(value: Any) -> list[str]:
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return _str_list(value)


def _match_score(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(0, min(100, value))
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    score = round(number)
    return max(0, min(100, score))


# --- entry builders ---


def build_experience(item: dict[str, Any], index: int) -> ExperienceEntry:
    return ExperienceEntry(
        id=_text(item.get("id")) or f"exp-{index}",
        company=_text(item.get("company")),
        position=_text(item.get("position") or item.get("title")),
        location=_opt_text(item.get("location")),
        start_date=_text(item.get("startDate")),
        end_date=_end_date(item.get("endDate")),
        bullets=_str_list(item.get("bullets")),
    )


def build_education(item: dict[str, Any], index: int) -> EducationEntry:
    return EducationEntry(
        id=_text(item.get("id")) or f"edu-{index}",
        institution=_text(item.get("institution")),
        degree=_text(item.get("degree")),
        field=_opt_text(item.get("field")),
        location=_opt_text(item.get("location")),
        start_date=_opt_text(item.get("startDate")),
        end_date=_opt_text(item.get("endDate")),
        gpa=_opt_text(item.get("gpa")),
        highlights=_str_list(item.get("highlights")),
    )


def build_project(item: dict[str, Any], index: int) -> ProjectEntry:
    return ProjectEntry(
        id=_text(item.get("id")) or f"proj-{index}",
        name=_text(item.get("name")),
        description=_opt_text(item.get("description")),
        technologies=_technologies(item.get("technologies")),
        url=_opt_text(item.get("url")),
        start_date=_opt_text(item.get("startDate")),
        end_date=_opt_text(item.get("endDate")),
        bullets=_str_list(item.get("bullets")),
    )


def build_entries(
    value: Any,
    field: str,
    build: Callable[[dict[str, Any], int], BaseModel],
    notes: list[str],
) -> list:
    """Build entries from a native or JSON-encoded list, skipping unusable items."""
    if value is None or value == "" or value == {}:
        return []
    items = json_list_or_none(value)
    if items is None:
        logger.warning("%s could not be parsed, using []", field)
        notes.append(f"{field} could not be parsed")
        return []

    entries = []
    skipped = 0
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            entries.append(build(item, i))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("%s: dropped %d unusable entries", field, skipped)
        notes.append(f"{field} contained {skipped} unusable entries")
    return entries


def _entries(
    payload: dict[str, Any],
    key: str,
    build: Callable[[dict[str, Any], int], BaseModel],
    notes: list[str],
) -> list:
    field = f"{key}Json"
    return build_entries(payload.get(field, payload.get(key)), field, build, notes)


def _payload(raw: Any, notes: list[str]) -> dict[str, Any]:
    if isinstance(raw, dict):
        raw = raw_answer_from(raw)
    elif isinstance(raw, str):
        raw = raw_answer_from(raw)

    if raw is None:
        notes.append("agent returned no answer")
        return {}
    if isinstance(raw, ObjectAnswer):
        return raw.payload
    if isinstance(raw, TextAnswer):
        try:
            parsed = extract_json(raw.text)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        notes.append("answer text was not a JSON object")
        return {}
    if isinstance(raw, OtherAnswer):
        notes.append(f"answer had unexpected type {type(raw.value).__name__}")
    return {}


def decode_with_report(raw: Any) -> tuple[TailoredResume, list[str]]:
    """Decode ``raw`` and also return notes describing what had to be defaulted.

    ``raw`` may be a RawAnswer, a plain dict, a string, or None.
    """
    notes: list[str] = []
    payload = _payload(raw, notes)

    contact = ContactInfo(
        name=_text(payload.get("name")),
        email=_text(payload.get("email")),
        **{f: _opt_text(payload.get(f)) for f in CONTACT_FIELDS[2:]},
    )
    professional_summary = _text(payload.get("professionalSummary"))

    match_score = _match_score(payload.get("matchScore"))
    if match_score is None:
        if payload.get("matchScore") is not None:
            notes.append("matchScore was not a number")
        match_score = 0

    key_improvements = _str_list(payload.get("keyImprovements"))
    summary = ChangeSummary(
        total_changes=len(key_improvements),
        key_improvements=key_improvements,
        keywords_added=_str_list(payload.get("keywordsAdded")),
        warnings=_str_list(payload.get("warnings")),
    )

    resume = TailoredResume(
        full_text=f"{contact.name}\n{contact.email}\n\n{professional_summary}",
        contact=contact,
        professional_summary=professional_summary,
        experience=_entries(payload, "experience", build_experience, notes),
        education=_entries(payload, "education", build_education, notes),
        projects=_entries(payload, "projects", build_project, notes),
        skills=SkillsData.categorized([
            SkillCategory(name=TECHNICAL_SKILLS, skills=_str_list(payload.get("technicalSkills"))),
            SkillCategory(
                name=FRAMEWORKS_AND_TOOLS, skills=_str_list(payload.get("frameworksAndTools"))
            ),
        ]),
        summary=summary,
        match_score=match_score,
    )
    return resume, notes


def decode(raw: Any) -> TailoredResume:
    """Total decode of an agent answer into a TailoredResume."""
    return decode_with_report(raw)[0]


def _split_skills(skills: SkillsData) -> tuple[list[str], list[str]]:
    if skills.format != "categorized":
        return list(skills.skills or []), []
    technical: list[str] = []
    frameworks: list[str] = []
    for category in skills.categories or []:
        target = frameworks if category.name == FRAMEWORKS_AND_TOOLS else technical
        target.extend(category.skills)
    return technical, frameworks


def flatten(resume: TailoredResume) -> dict[str, Any]:
    """Serialize a TailoredResume into the flat answer shape ``decode`` reads."""
    technical, frameworks = _split_skills(resume.skills)
    flat: dict[str, Any] = resume.contact.model_dump(exclude_none=True)
    flat.update(
        professionalSummary=resume.professional_summary,
        experienceJson=json.dumps([e.to_wire() for e in resume.experience]),
        educationJson=json.dumps([e.to_wire() for e in resume.education]),
        projectsJson=json.dumps([p.to_wire() for p in resume.projects]),
        technicalSkills=technical,
        frameworksAndTools=frameworks,
        keyImprovements=list(resume.summary.key_improvements),
        keywordsAdded=list(resume.summary.keywords_added),
        warnings=list(resume.summary.warnings),
        matchScore=resume.match_score,
    )
    return flat
