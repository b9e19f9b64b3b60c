"""Gathers a user's stored records into one ProfileSnapshot."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from resume_studio.models.merge import StoredProject
from resume_studio.models.profile import (
    ContactInfo,
    EducationEntry,
    ExperienceEntry,
    ProfileSnapshot,
    ProjectEntry,
    SkillCategory,
    SkillsData,
)
from resume_studio.store.profile_store import ProfileStore

logger = logging.getLogger(__name__)

DEFAULT_SKILL_CATEGORY = "Other"


def _split_lines(text: str | None) -> list[str]:
    if not text:
        return []
    return [line.strip() for line in text.split("\n") if line.strip()]


def _experience(rows: list[dict[str, Any]]) -> list[ExperienceEntry]:
    return [
        ExperienceEntry(
            id=f"exp-{i}",
            company=row.get("company") or "",
            position=row.get("position") or "",
            location=row.get("location") or None,
            start_date=row.get("start_date") or "",
            end_date=row.get("end_date") or None,
            bullets=_split_lines(row.get("description")),
        )
        for i, row in enumerate(rows)
    ]


def _education(rows: list[dict[str, Any]]) -> list[EducationEntry]:
    entries = []
    for i, row in enumerate(rows):
        highlights = row.get("highlights")
        if not highlights:
            highlights = []
        elif not isinstance(highlights, list):
            highlights = [str(highlights)]
        entries.append(
            EducationEntry(
                id=f"edu-{i}",
                institution=row.get("institution") or "",
                degree=row.get("degree") or "",
                field=row.get("field_of_study") or None,
                location=row.get("location") or None,
                start_date=row.get("start_date") or None,
                end_date=row.get("end_date") or None,
                gpa=row.get("gpa") or None,
                highlights=[str(h) for h in highlights],
            )
        )
    return entries


def _projects(rows: list[StoredProject]) -> list[ProjectEntry]:
    return [
        ProjectEntry(
            id=f"proj-{i}",
            name=p.name,
            description=p.description or None,
            technologies=list(p.skills),
            url=p.url or None,
            start_date=p.start_date,
            end_date=p.end_date,
            bullets=list(p.bullets) or _split_lines(p.description),
        )
        for i, p in enumerate(rows)
    ]


def _skills(rows: list[dict[str, Any]]) -> SkillsData:
    grouped: dict[str, list[str]] = {}
    for row in rows:
        name = row.get("name")
        if not name:
            continue
        grouped.setdefault(row.get("category") or DEFAULT_SKILL_CATEGORY, []).append(name)
    return SkillsData.categorized(
        [SkillCategory(name=name, skills=skills) for name, skills in grouped.items()]
    )


def _contact(row: dict[str, Any] | None) -> tuple[ContactInfo, str | None]:
    row = row or {}
    contact = ContactInfo(
        name=row.get("full_name") or "",
        email=row.get("email") or "",
        phone=row.get("phone") or None,
        location=row.get("location") or None,
        linkedin=row.get("linkedin_url") or None,
        github=row.get("github_url") or None,
        website=row.get("website_url") or None,
    )
    return contact, row.get("professional_summary") or None


class ProfileAggregator:
    """Reads every profile category concurrently and tolerates partial failure.

    A category whose read fails is logged and treated as empty. Whether the
    resulting snapshot is usable is the caller's decision.
    """

    def __init__(self, store: ProfileStore):
        self.store = store

    async def _read(self, category: str, fn, user_id: str, default: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, user_id)
        except Exception:
            logger.warning("Failed to read %s for user %s", category, user_id, exc_info=True)
            return default

    async def aggregate(self, user_id: str) -> ProfileSnapshot:
        contact_row, exp_rows, edu_rows, project_rows, skill_rows = await asyncio.gather(
            self._read("contact", self.store.get_contact, user_id, None),
            self._read("experience", self.store.list_experience, user_id, []),
            self._read("education", self.store.list_education, user_id, []),
            self._read("projects", self.store.list_projects, user_id, []),
            self._read("skills", self.store.list_skills, user_id, []),
        )
        contact, summary = _contact(contact_row)
        snapshot = ProfileSnapshot(
            experience=_experience(exp_rows),
            education=_education(edu_rows),
            projects=_projects(project_rows),
            skills=_skills(skill_rows),
            contact=contact,
            summary=summary,
        )
        logger.info("Profile for %s: %s", user_id, snapshot.describe())
        return snapshot
