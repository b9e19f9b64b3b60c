"""Profile records and the per-request profile snapshot."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator

from resume_studio.models.base import WireModel


class ContactInfo(WireModel):
    name: str = ""
    email: str = ""
    phone: str | None = None
    location: str | None = None
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None


class ExperienceEntry(WireModel):
    id: str
    company: str = ""
    position: str = ""
    location: str | None = None
    start_date: str = ""
    end_date: str | None = None  # None means current / ongoing
    bullets: list[str] = Field(default_factory=list)

    @property
    def is_current(self) -> bool:
        return self.end_date is None


class EducationEntry(WireModel):
    id: str
    institution: str = ""
    degree: str = ""
    field: str | None = None
    location: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    gpa: str | None = None
    highlights: list[str] = Field(default_factory=list)


class ProjectEntry(WireModel):
    id: str
    name: str = ""
    description: str | None = None
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    bullets: list[str] = Field(default_factory=list)


class SkillCategory(WireModel):
    name: str
    skills: list[str] = Field(default_factory=list)


class SkillsData(WireModel):
    """Skills in exactly one representation, selected by ``format``.

    ``list`` and ``inline`` use ``skills``; ``categorized`` uses ``categories``.
    """

    format: Literal["list", "inline", "categorized"] = "categorized"
    skills: list[str] | None = None
    categories: list[SkillCategory] | None = None

    @model_validator(mode="after")
    def _one_representation(self) -> SkillsData:
        if self.format == "categorized":
            if self.skills is not None:
                raise ValueError("categorized skills must not carry a flat skills list")
            if self.categories is None:
                self.categories = []
        else:
            if self.categories is not None:
                raise ValueError(f"{self.format} skills must not carry categories")
            if self.skills is None:
                self.skills = []
        return self

    @classmethod
    def categorized(cls, categories: list[SkillCategory]) -> SkillsData:
        return cls(format="categorized", categories=categories)

    def all_skills(self) -> list[str]:
        if self.format == "categorized":
            return [s for c in self.categories or [] for s in c.skills]
        return list(self.skills or [])


class ProfileSnapshot(WireModel):
    """Everything stored about a user, gathered fresh for one request."""

    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    skills: SkillsData = Field(default_factory=SkillsData)
    contact: ContactInfo = Field(default_factory=ContactInfo, alias="contactInfo")
    summary: str | None = Field(default=None, alias="professionalSummary")

    @property
    def has_tailorable_content(self) -> bool:
        return bool(self.experience or self.projects)

    def describe(self) -> str:
        return (
            f"Found {len(self.experience)} jobs, {len(self.projects)} projects, "
            f"{len(self.education)} education entries"
        )
