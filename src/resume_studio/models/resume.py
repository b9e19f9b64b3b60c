"""Tailored resume output model."""

from __future__ import annotations

from pydantic import Field

from resume_studio.models.base import WireModel
from resume_studio.models.profile import (
    ContactInfo,
    EducationEntry,
    ExperienceEntry,
    ProjectEntry,
    SkillsData,
)


class ChangeSummary(WireModel):
    total_changes: int = 0
    key_improvements: list[str] = Field(default_factory=list)
    keywords_added: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class TailoredResume(WireModel):
    full_text: str = ""
    contact: ContactInfo = Field(default_factory=ContactInfo, alias="contactInfo")
    professional_summary: str = ""
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    skills: SkillsData = Field(default_factory=SkillsData)
    summary: ChangeSummary = Field(default_factory=ChangeSummary)
    match_score: int = Field(default=0, ge=0, le=100)
