"""Extracts a structured job posting from a URL via the agent."""

from __future__ import annotations

import logging
import time
from typing import Any

from resume_studio.clients.agent_client import AgentRunClient, run_to_completion
from resume_studio.errors import AgentFailure, UnsafeUrlError
from resume_studio.logging.usage_store import UsageRecorder
from resume_studio.models.agent import AgentRun, AgentRunRequest, ObjectAnswer, PlatformTool, TextAnswer
from resume_studio.models.job import ParsedJobPosting
from resume_studio.utils.json_parser import extract_json
from resume_studio.utils.url_validator import validate_url

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "tim-large"

FETCH_JOB_PROMPT = """\
Read this job posting and extract the key information: {url}

Extract the job title, company name, location, employment type, salary range if mentioned, \
a brief 2-3 sentence description, responsibilities, requirements, nice-to-haves, \
technical skills, experience level, and keywords for a resume."""

_LIST = {"type": "array", "items": {"type": "string"}}

JOB_POSTING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "title": "ParsedJob",
    "properties": {
        "title": {"type": "string", "description": "Job title"},
        "company": {"type": "string", "description": "Company name"},
        "location": {"type": "string", "description": "Location (city, remote, hybrid, etc.)"},
        "employmentType": {"type": "string", "description": "Full-time, part-time, contract, etc."},
        "salaryRange": {"type": "string", "description": "Salary range if mentioned, or null"},
        "description": {"type": "string", "description": "Brief summary of the role (2-3 sentences)"},
        "responsibilities": {**_LIST, "description": "Array of job responsibilities"},
        "requirements": {**_LIST, "description": "Array of required qualifications"},
        "niceToHaves": {**_LIST, "description": "Array of preferred/nice-to-have qualifications"},
        "technicalSkills": {
            **_LIST,
            "description": "Array of technical skills: languages, frameworks, tools",
        },
        "experienceLevel": {"type": "string", "description": "Years of experience or seniority level"},
        "keywords": {**_LIST, "description": "Array of important keywords for a resume"},
    },
    "required": ["title", "company", "description", "responsibilities", "requirements", "keywords"],
}

ACCESS_ERROR_INDICATORS = (
    "unavailable",
    "could not be accessed",
    "permission error",
    "unable to access",
    "not found",
    "access denied",
    "blocked",
    "forbidden",
)

_LIST_FIELDS = (
    "responsibilities", "requirements", "niceToHaves", "technicalSkills", "keywords",
)
_TEXT_FIELDS = (
    "title", "company", "location", "employmentType", "salaryRange", "description",
    "experienceLevel",
)


def posting_from_answer(payload: dict[str, Any]) -> ParsedJobPosting:
    """Build a posting from an untrusted answer, dropping values of the wrong type."""
    data: dict[str, Any] = {}
    for key in _TEXT_FIELDS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            data[key] = value.strip()
    for key in _LIST_FIELDS:
        value = payload.get(key)
        if isinstance(value, list):
            data[key] = [str(v).strip() for v in value if isinstance(v, str) and v.strip()]
    return ParsedJobPosting.model_validate(data)


def soft_failure_message(posting: ParsedJobPosting) -> str | None:
    """Best-effort check for an agent that "succeeded" without reading the page.

    Substring matching only: a hit in the title or description counts when
    the posting also has no requirements, responsibilities or keywords.
    Returns the message to show, or None.
    """
    title = posting.title.lower()
    description = posting.description.lower()
    if posting.has_listings:
        return None
    if not any(i in title or i in description for i in ACCESS_ERROR_INDICATORS):
        return None
    if "permission" in description:
        return (
            "The job posting page blocked our access. "
            "Try pasting the job description text directly instead."
        )
    if "not found" in description or "not found" in title:
        return "The job posting was not found. It may have been removed or the link may be incorrect."
    return (
        "Could not access the job posting. The page may be blocked, "
        "require login, or no longer exist."
    )


def _payload(run: AgentRun) -> dict[str, Any] | None:
    if isinstance(run.answer, ObjectAnswer):
        return run.answer.payload
    if isinstance(run.answer, TextAnswer):
        try:
            parsed = extract_json(run.answer.text)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


class JobPostingFetcher:
    def __init__(
        self,
        agent: AgentRunClient,
        *,
        engine: str = DEFAULT_ENGINE,
        timeout: float = 180,
        poll_interval: float = 2.0,
        resolve_hosts: bool = True,
        usage: UsageRecorder | None = None,
    ):
        self.agent = agent
        self.engine = engine
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.resolve_hosts = resolve_hosts
        self.usage = usage or UsageRecorder()

    async def fetch(self, url: str, *, user_id: str | None = None) -> ParsedJobPosting:
        try:
            url = validate_url(url, resolve=self.resolve_hosts)
        except ValueError as e:
            # SSRFError is a ValueError too
            raise UnsafeUrlError(f"Invalid URL: {e}") from e

        request = AgentRunRequest(
            engine=self.engine,
            instructions=FETCH_JOB_PROMPT.format(url=url),
            tools=[
                PlatformTool(id="webpage_understanding"),
                PlatformTool(id="parallel_extract"),
            ],
            answer_format=JOB_POSTING_SCHEMA,
        )
        logger.info("Fetching job posting %s", url)
        started = time.monotonic()
        try:
            run = await run_to_completion(
                self.agent,
                request,
                timeout=self.timeout,
                poll_interval=self.poll_interval,
                await_completion=True,
            )
        except AgentFailure as e:
            await self.usage.arecord("fetch_job", user_id=user_id, started=started, error=str(e))
            raise AgentFailure(
                str(e),
                user_message=(
                    "Failed to access job posting. The page may be unavailable or blocked."
                ),
                detail=e.detail,
                error_code=e.error_code,
            ) from e

        try:
            posting = self._posting(run)
        except AgentFailure as e:
            await self.usage.arecord("fetch_job", user_id=user_id, started=started, run=run, error=str(e))
            raise
        await self.usage.arecord("fetch_job", user_id=user_id, started=started, run=run)
        logger.info(
            "Parsed job %r at %r (%d requirements, %d keywords)",
            posting.title, posting.company, len(posting.requirements), len(posting.keywords),
        )
        return posting

    def _posting(self, run: AgentRun) -> ParsedJobPosting:
        if not run.succeeded:
            message = getattr(run.error, "message", "") or f"Job fetch {run.status.value}"
            raise AgentFailure(
                f"Job fetch run {run.run_id} ended with {run.status.value}",
                user_message=message,
                detail=run.error,
                error_code=run.status.value,
                debug={"runId": run.run_id},
            )

        payload = _payload(run)
        if payload is None:
            raise AgentFailure(
                f"Job fetch run {run.run_id} returned no usable answer",
                user_message=(
                    "Could not extract job information from the page. The page may be "
                    "inaccessible or the job posting may have been removed."
                ),
                error_code="empty_answer",
                debug={"runId": run.run_id},
            )

        posting = posting_from_answer(payload)
        if not posting.title or not posting.company:
            raise AgentFailure(
                f"Job fetch run {run.run_id} is missing title or company",
                user_message=(
                    "Failed to extract job information. The page may be inaccessible "
                    "or the job posting format is not recognized."
                ),
                error_code="extraction_failed",
                debug={"runId": run.run_id, "answer": payload},
            )

        message = soft_failure_message(posting)
        if message is not None:
            logger.warning("Agent could not access the job page (title=%r)", posting.title)
            raise AgentFailure(
                f"Job fetch run {run.run_id} reported a page access problem",
                user_message=message,
                error_code="page_access_error",
                debug={
                    "runId": run.run_id,
                    "title": posting.title,
                    "description": posting.description,
                },
            )
        return posting
