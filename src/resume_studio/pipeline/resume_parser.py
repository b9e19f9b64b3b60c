"""Structured parsing of plain-text resumes via the agent.

Every failure path (agent error, timeout, unparsable answer) returns the
unstructured fallback instead of raising.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import ValidationError

from resume_studio.clients.agent_client import AgentRunClient, run_to_completion
from resume_studio.errors import AgentFailure
from resume_studio.logging.usage_store import UsageRecorder
from resume_studio.models.agent import AgentRunRequest, ObjectAnswer, TextAnswer
from resume_studio.models.parsed_resume import ParsedResume, ResumeSection
from resume_studio.models.profile import ContactInfo, SkillCategory, SkillsData
from resume_studio.pipeline.output_decoder import (
    CONTACT_FIELDS,
    build_education,
    build_entries,
    build_experience,
    build_project,
)
from resume_studio.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "tim-large"

PARSING_PROMPT = """\
You are an expert resume parser. Extract structured data from the resume text below.

## RESUME TEXT
{resume_text}

## YOUR TASK
Parse the resume and return a JSON object with the following structure. Extract ALL information - do not skip any details.

{{
  "contactInfo": {{
    "name": "Full Name",
    "email": "email@example.com",
    "phone": "(123) 456-7890",
    "location": "City, State",
    "linkedin": "linkedin.com/in/username",
    "github": "github.com/username",
    "website": "example.com"
  }},
  "experience": [
    {{
      "id": "exp-1",
      "company": "Company Name",
      "position": "Job Title",
      "location": "City, State",
      "startDate": "Month Year",
      "endDate": "Month Year or null if current",
      "bullets": ["First bullet point describing achievement", "Second bullet point"]
    }}
  ],
  "education": [
    {{
      "id": "edu-1",
      "institution": "University Name",
      "degree": "B.S.",
      "field": "Computer Science",
      "location": "City, State",
      "startDate": "Year",
      "endDate": "Year or Expected Year",
      "gpa": "3.8",
      "highlights": ["Dean's List", "Relevant coursework"]
    }}
  ],
  "skills": {{
    "format": "categorized",
    "categories": [
      {{ "name": "Languages", "skills": ["Python", "JavaScript"] }},
      {{ "name": "Frameworks", "skills": ["React", "Node.js"] }},
      {{ "name": "Tools", "skills": ["Git", "Docker"] }}
    ]
  }},
  "projects": [
    {{
      "id": "proj-1",
      "name": "Project Name",
      "description": "Brief description",
      "technologies": ["React", "Node.js"],
      "url": "github.com/project",
      "startDate": "Month Year",
      "endDate": "Month Year",
      "bullets": ["What you built or achieved"]
    }}
  ],
  "sections": [
    {{ "title": "Experience", "content": "Raw text content", "order": 0 }},
    {{ "title": "Education", "content": "Raw text content", "order": 1 }}
  ]
}}

## RULES
1. Extract ALL experience entries, education entries, projects
2. Parse each bullet point separately into the bullets array
3. For skills, try to categorize them (Languages, Frameworks, Tools, etc.)
4. If a field is not present, omit it (don't include null or empty strings)
5. Generate unique IDs for each entry (exp-1, exp-2, edu-1, proj-1, etc.)
6. Keep date formats consistent (e.g., "Jan 2024", "May 2025")
7. Return ONLY valid JSON, no markdown code blocks

Return the JSON object now:"""


def _contact(value: Any) -> ContactInfo:
    if not isinstance(value, dict):
        return ContactInfo()
    fields = {}
    for key in CONTACT_FIELDS:
        item = value.get(key)
        if isinstance(item, str) and item.strip():
            fields[key] = item.strip()
    return ContactInfo(**fields)


def _skills(value: Any) -> SkillsData:
    if isinstance(value, list):
        return SkillsData(format="list", skills=[str(s) for s in value if isinstance(s, str)])
    if not isinstance(value, dict):
        return SkillsData()
    try:
        return SkillsData.model_validate(value)
    except ValidationError:
        categories = value.get("categories")
        if not isinstance(categories, list):
            return SkillsData()
        kept = []
        for c in categories:
            if isinstance(c, dict) and isinstance(c.get("name"), str):
                skills = c.get("skills") if isinstance(c.get("skills"), list) else []
                kept.append(
                    SkillCategory(name=c["name"], skills=[s for s in skills if isinstance(s, str)])
                )
        return SkillsData.categorized(kept)


def _sections(value: Any) -> list[ResumeSection]:
    if not isinstance(value, list):
        return []
    sections = []
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            continue
        try:
            sections.append(
                ResumeSection(
                    title=str(item.get("title") or ""),
                    content=str(item.get("content") or ""),
                    order=int(item.get("order", i)),
                )
            )
        except (TypeError, ValueError):
            continue
    return sections


def parsed_resume_from(payload: dict[str, Any], text: str) -> ParsedResume:
    """Build a ParsedResume from the agent's object, keeping the original text."""
    notes: list[str] = []
    parsed = ParsedResume(
        full_text=text,
        sections=_sections(payload.get("sections")),
        contact=_contact(payload.get("contactInfo")),
        experience=build_entries(payload.get("experience"), "experience", build_experience, notes),
        education=build_entries(payload.get("education"), "education", build_education, notes),
        skills=_skills(payload.get("skills")),
        projects=build_entries(payload.get("projects"), "projects", build_project, notes),
    )
    if notes:
        logger.warning("Parsed resume with defaults: %s", "; ".join(notes))
    return parsed


class ResumeTextParser:
    def __init__(
        self,
        agent: AgentRunClient,
        *,
        engine: str = DEFAULT_ENGINE,
        timeout: float = 120,
        poll_interval: float = 2.0,
        usage: UsageRecorder | None = None,
    ):
        self.agent = agent
        self.engine = engine
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.usage = usage or UsageRecorder()

    async def parse(self, text: str, *, user_id: str | None = None) -> ParsedResume:
        request = AgentRunRequest(
            engine=self.engine,
            instructions=PARSING_PROMPT.format(resume_text=text),
        )
        started = time.monotonic()
        try:
            run = await run_to_completion(
                self.agent, request, timeout=self.timeout, poll_interval=self.poll_interval
            )
        except AgentFailure as e:
            logger.warning("Resume parsing failed, returning fallback: %s", e)
            await self.usage.arecord("parse_resume", user_id=user_id, started=started, error=str(e))
            return ParsedResume.fallback(text)

        if not run.usable:
            logger.warning("Resume parse run %s ended with %s", run.run_id, run.status.value)
            await self.usage.arecord(
                "parse_resume", user_id=user_id, started=started, run=run,
                error=f"status {run.status.value}",
            )
            return ParsedResume.fallback(text)

        payload: Any = None
        if isinstance(run.answer, ObjectAnswer):
            payload = run.answer.payload
        elif isinstance(run.answer, TextAnswer):
            try:
                payload = extract_json(run.answer.text)
            except ValueError:
                payload = None

        if not isinstance(payload, dict):
            logger.warning("Resume parse run %s returned no JSON object", run.run_id)
            await self.usage.arecord(
                "parse_resume", user_id=user_id, started=started, run=run,
                error="unparsable answer",
            )
            return ParsedResume.fallback(text)

        await self.usage.arecord("parse_resume", user_id=user_id, started=started, run=run)
        return parsed_resume_from(payload, text)
