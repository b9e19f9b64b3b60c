"""Project reconciliation models: inputs, decisions and results."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field

from resume_studio.models.base import WireModel


class ParsedProject(WireModel):
    """A project freshly extracted from a resume."""

    id: str | None = None
    name: str
    description: str | None = None
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    bullets: list[str] = Field(default_factory=list)


class StoredProject(WireModel):
    """A project already persisted for the user."""

    id: str
    user_id: str
    name: str
    description: str | None = None
    bullets: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    url: str | None = None
    is_featured: bool = False


class ProjectPatch(WireModel):
    description: str | None = None
    bullets: list[str] | None = None
    skills: list[str] | None = None
    url: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.fields()

    def fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AddDecision(WireModel):
    action: Literal["add"] = "add"
    project: ParsedProject
    reason: str


class UpdateDecision(WireModel):
    action: Literal["update"] = "update"
    existing_id: str
    patch: ProjectPatch = Field(alias="updates")
    reason: str


class SkipDecision(WireModel):
    action: Literal["skip"] = "skip"
    project: ParsedProject
    matched_with: str
    reason: str


MergeDecision = Annotated[
    Union[AddDecision, UpdateDecision, SkipDecision],
    Field(discriminator="action"),
]


class ApplyCounts(WireModel):
    added: int = 0
    updated: int = 0
    skipped: int = 0


class MergeResult(WireModel):
    add: list[AddDecision] = Field(default_factory=list)
    update: list[UpdateDecision] = Field(default_factory=list)
    skip: list[SkipDecision] = Field(default_factory=list)
    tier: Literal["agent", "fallback", "direct"] = "direct"

    def record(self, decision: MergeDecision) -> None:
        if isinstance(decision, AddDecision):
            self.add.append(decision)
        elif isinstance(decision, UpdateDecision):
            self.update.append(decision)
        else:
            self.skip.append(decision)

    def decisions(self) -> list[MergeDecision]:
        return [*self.add, *self.update, *self.skip]

    def planned_counts(self) -> ApplyCounts:
        return ApplyCounts(
            added=len(self.add), updated=len(self.update), skipped=len(self.skip)
        )


def summarize_counts(counts: ApplyCounts) -> str:
    parts = []
    if counts.added:
        parts.append(f"Added {counts.added} new projects")
    if counts.updated:
        parts.append(f"Updated {counts.updated} projects")
    if counts.skipped:
        parts.append(f"Skipped {counts.skipped} duplicates")
    return ", ".join(parts) or "No changes made"


class MergeResponse(WireModel):
    success: bool = True
    message: str
    result: MergeResult
    applied: ApplyCounts
