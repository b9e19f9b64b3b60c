"""Data models for the resume studio pipeline."""

from resume_studio.models.agent import AgentRun, AgentRunRequest, PlatformTool, RunStatus
from resume_studio.models.events import (
    CompleteEvent,
    ErrorEvent,
    Phase,
    PhaseEvent,
    ProgressEvent,
    ThoughtEvent,
)
from resume_studio.models.job import JobDescription, ParsedJobPosting, TailorRequest
from resume_studio.models.merge import (
    AddDecision,
    ApplyCounts,
    MergeResponse,
    MergeResult,
    ParsedProject,
    ProjectPatch,
    SkipDecision,
    StoredProject,
    UpdateDecision,
)
from resume_studio.models.parsed_resume import ParsedResume, ResumeSection
from resume_studio.models.profile import (
    ContactInfo,
    EducationEntry,
    ExperienceEntry,
    ProfileSnapshot,
    ProjectEntry,
    SkillCategory,
    SkillsData,
)
from resume_studio.models.resume import ChangeSummary, TailoredResume

__all__ = [
    "AddDecision",
    "AgentRun",
    "AgentRunRequest",
    "ApplyCounts",
    "ChangeSummary",
    "CompleteEvent",
    "ContactInfo",
    "EducationEntry",
    "ErrorEvent",
    "ExperienceEntry",
    "JobDescription",
    "MergeResponse",
    "MergeResult",
    "ParsedJobPosting",
    "ParsedProject",
    "ParsedResume",
    "Phase",
    "PhaseEvent",
    "PlatformTool",
    "ProfileSnapshot",
    "ProgressEvent",
    "ProjectEntry",
    "ProjectPatch",
    "ResumeSection",
    "RunStatus",
    "SkillCategory",
    "SkillsData",
    "SkipDecision",
    "StoredProject",
    "TailorRequest",
    "TailoredResume",
    "ThoughtEvent",
    "UpdateDecision",
]
