"""Structured data parsed out of a plain-text resume."""

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


class ResumeSection(WireModel):
    title: str
    content: str
    order: int = 0


class ParsedResume(WireModel):
    full_text: str
    sections: list[ResumeSection] = Field(default_factory=list)
    contact: ContactInfo = Field(default_factory=ContactInfo, alias="contactInfo")
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    skills: SkillsData = Field(default_factory=SkillsData)
    projects: list[ProjectEntry] = Field(default_factory=list)

    @classmethod
    def fallback(cls, text: str) -> ParsedResume:
        """The unstructured result used when the agent cannot parse the text."""
        return cls(
            full_text=text,
            sections=[ResumeSection(title="Resume", content=text, order=0)],
        )
