"""Job posting models."""

from __future__ import annotations

from pydantic import Field

from resume_studio.models.base import WireModel


class JobDescription(WireModel):
    title: str
    company: str
    full_text: str
    requirements: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    source_url: str | None = None


class TailorRequest(WireModel):
    job_description: JobDescription
    use_profile_data: bool = True


class ParsedJobPosting(WireModel):
    """A job posting extracted from a web page by the agent."""

    title: str = ""
    company: str = ""
    location: str | None = None
    employment_type: str | None = None
    salary_range: str | None = None
    description: str = ""
    responsibilities: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    nice_to_haves: list[str] = Field(default_factory=list)
    technical_skills: list[str] = Field(default_factory=list)
    experience_level: str | None = None
    keywords: list[str] = Field(default_factory=list)

    @property
    def has_listings(self) -> bool:
        return bool(self.requirements or self.responsibilities or self.keywords)

    def render_text(self) -> str:
        """Render the posting as the plain text used for tailoring."""
        lines = [f"{self.title} at {self.company}"]
        if self.location:
            lines.append(f"Location: {self.location}")
        if self.employment_type:
            lines.append(f"Type: {self.employment_type}")
        if self.salary_range:
            lines.append(f"Salary: {self.salary_range}")
        lines.append("")

        if self.description:
            lines += ["About the Role:", self.description, ""]
        for heading, items in (
            ("Responsibilities:", self.responsibilities),
            ("Requirements:", self.requirements),
            ("Nice to Have:", self.nice_to_haves),
        ):
            if items:
                lines.append(heading)
                lines.extend(f"• {item}" for item in items)
                lines.append("")
        return "\n".join(lines)

    def to_job_description(self, source_url: str | None = None) -> JobDescription:
        return JobDescription(
            title=self.title,
            company=self.company,
            full_text=self.render_text(),
            requirements=self.requirements,
            responsibilities=self.responsibilities,
            keywords=self.keywords,
            source_url=source_url,
        )
