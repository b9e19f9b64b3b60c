"""Tailoring pipeline: profile -> agent -> decode, streamed as progress events."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from pydantic import ValidationError

from resume_studio.auth import TokenAuthenticator
from resume_studio.clients.agent_client import AgentRunClient, run_to_completion
from resume_studio.errors import (
    AgentFailure,
    AuthError,
    InsufficientProfileDataError,
    InvalidRequestError,
    ResumeStudioError,
)
from resume_studio.logging.usage_store import UsageRecorder
from resume_studio.models.agent import (
    AgentRun,
    AgentRunRequest,
    PlatformTool,
    RunStatus,
)
from resume_studio.models.events import (
    CompleteEvent,
    ErrorEvent,
    Phase,
    PhaseEvent,
    ThoughtEvent,
)
from resume_studio.models.job import JobDescription, TailorRequest
from resume_studio.models.profile import ProfileSnapshot
from resume_studio.models.resume import TailoredResume
from resume_studio.pipeline.output_decoder import TAILORED_RESUME_SCHEMA, decode_with_report
from resume_studio.pipeline.profile_aggregator import ProfileAggregator
from resume_studio.streaming.channel import EventChannel

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "tim-large"

PHASE_PROGRESS: dict[Phase, int] = {
    Phase.LOADING_PROFILE: 5,
    Phase.RESEARCHING: 20,
    Phase.TAILORING: 30,
    Phase.VALIDATING: 90,
    Phase.COMPLETE: 100,
}

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

INSTRUCTIONS_TEMPLATE = """\
Tailor this resume for ATS optimization. Reorder and rephrase to match job keywords.

## RULES
- NEVER fabricate info. Only use candidate's data below.
- Use STAR format: Action verb + what you did + quantified result
- Example: "Architected microservices handling 10K req/sec, reducing latency 40%"
- Action verbs: Built, Led, Optimized, Delivered, Scaled, Launched, Designed, Implemented
- Quantify: users, %, time saved, scale
- Experience: 3-4 bullets each | Projects: 2-3 bullets each
- Match keywords from the job posting in your bullets

## JOB POSTING
{title} at {company}
{full_text}
{keywords}

## CANDIDATE DATA
Contact: {contact}
{summary}
Experience: {experience}
Education: {education}
Projects: {projects}
Skills: {skills}"""


def build_instructions(job: JobDescription, profile: ProfileSnapshot) -> str:
    def dump(items: Any) -> str:
        if isinstance(items, list):
            return json.dumps([i.to_wire() for i in items])
        return json.dumps(items.to_wire())

    return INSTRUCTIONS_TEMPLATE.format(
        title=job.title,
        company=job.company,
        full_text=job.full_text,
        keywords=f"Keywords: {', '.join(job.keywords)}" if job.keywords else "",
        contact=dump(profile.contact),
        summary=f"Current Summary: {profile.summary}" if profile.summary else "",
        experience=dump(profile.experience),
        education=dump(profile.education),
        projects=dump(profile.projects),
        skills=dump(profile.skills),
    )


def _failure_from_run(run: AgentRun) -> AgentFailure:
    if run.status is RunStatus.TIMED_OUT:
        return AgentFailure(
            f"Agent run {run.run_id} timed out",
            user_message="Resume generation timed out. Please try again.",
            detail=run.error,
            error_code="timeout",
        )
    if run.succeeded:
        return AgentFailure(
            f"Agent run {run.run_id} returned no answer",
            user_message="Failed to generate resume",
            error_code="empty_answer",
        )
    return AgentFailure(
        f"Agent run {run.run_id} ended with status {run.status.value}",
        user_message="Failed to generate resume",
        detail=run.error,
        error_code=run.status.value,
    )


class _Progress:
    """Emits events for one run, holding phase order and progress monotonic."""

    def __init__(self, channel: EventChannel):
        self.channel = channel
        self.phase = Phase.INIT
        self.progress = 0

    def enter(self, phase: Phase) -> None:
        if phase.rank <= self.phase.rank:
            raise RuntimeError(f"Phase {phase.value} cannot follow {self.phase.value}")
        self.phase = phase
        self.progress = max(self.progress, PHASE_PROGRESS[phase])
        self.channel.send(PhaseEvent(phase=phase, progress=self.progress))

    def thought(self, text: str, progress: int | None = None) -> None:
        if progress is not None:
            self.progress = max(self.progress, min(progress, 100))
        self.channel.send(ThoughtEvent(text=text, phase=self.phase, progress=self.progress))


class TailoringOrchestrator:
    """Runs one tailoring request and streams its progress to a channel.

    The agent client is injected; one instance serves every request.
    """

    def __init__(
        self,
        aggregator: ProfileAggregator,
        agent: AgentRunClient,
        *,
        authenticator: TokenAuthenticator | None = None,
        engine: str = DEFAULT_ENGINE,
        timeout: float = 480,
        poll_interval: float = 2.0,
        await_completion: bool = True,
        usage: UsageRecorder | None = None,
        dev_mode: bool = False,
    ):
        self.aggregator = aggregator
        self.agent = agent
        self.authenticator = authenticator
        self.engine = engine
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.await_completion = await_completion
        self.usage = usage or UsageRecorder()
        self.dev_mode = dev_mode

    @staticmethod
    def validate_request(payload: Any) -> TailorRequest:
        """Check a raw request body before any stream is opened."""
        if not isinstance(payload, dict) or not payload.get("jobDescription"):
            raise InvalidRequestError("Job description is required")
        try:
            request = TailorRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequestError(
                "Job description requires title, company and fullText",
                debug={"errors": e.errors(include_url=False, include_context=False)},
            ) from e
        job = request.job_description
        missing = [
            name
            for name, value in (
                ("title", job.title),
                ("company", job.company),
                ("fullText", job.full_text),
            )
            if not value.strip()
        ]
        if missing:
            raise InvalidRequestError(f"Job description is missing {', '.join(missing)}")
        return request

    def _error_event(self, error: ResumeStudioError) -> ErrorEvent:
        return ErrorEvent(
            message=error.user_message,
            debug={"detail": str(error), **error.debug} if self.dev_mode else None,
        )

    async def run(
        self,
        request: TailorRequest,
        channel: EventChannel,
        *,
        authorization: str | None = None,
        user_id: str | None = None,
    ) -> TailoredResume | None:
        """Run the pipeline, ending the stream with exactly one terminal event.

        Returns the tailored resume, or None when the run ended in an error.
        """
        progress = _Progress(channel)
        job = request.job_description
        logger.info(
            "Tailoring for %s at %s (useProfileData=%s)",
            job.title, job.company, request.use_profile_data,
        )
        try:
            progress.enter(Phase.LOADING_PROFILE)
            progress.thought("Loading your profile data...", 10)

            if user_id is None:
                if self.authenticator is None:
                    raise AuthError("No authenticator configured")
                user_id = await asyncio.to_thread(self.authenticator.resolve, authorization)

            profile = await self.aggregator.aggregate(user_id)
            if not profile.has_tailorable_content:
                raise InsufficientProfileDataError(f"User {user_id} has no experience or projects")

            progress.enter(Phase.RESEARCHING)
            progress.thought(profile.describe(), 25)

            progress.enter(Phase.TAILORING)
            progress.thought(f"Tailoring your resume for {job.company}...", 35)
            run = await self._generate(job, profile, user_id)

            progress.enter(Phase.VALIDATING)
            result, notes = decode_with_report(run.answer)
            if notes:
                logger.warning("Decoded resume with defaults: %s", "; ".join(notes))
                result.summary.warnings.extend(n for n in notes if n not in result.summary.warnings)

            progress.enter(Phase.COMPLETE)
            progress.thought("Resume tailoring complete!", 100)
            channel.send(CompleteEvent(result=result, original_resume=profile))
            return result
        except ResumeStudioError as e:
            logger.info("Tailoring stopped: %s", e)
            channel.send(self._error_event(e))
            return None
        except Exception as e:
            logger.error("Tailoring failed unexpectedly", exc_info=True)
            channel.send(
                ErrorEvent(
                    message=UNEXPECTED_ERROR_MESSAGE,
                    debug={"exception": repr(e)} if self.dev_mode else None,
                )
            )
            return None
        finally:
            channel.close()

    async def _generate(self, job: JobDescription, profile: ProfileSnapshot, user_id: str) -> AgentRun:
        agent_request = AgentRunRequest(
            engine=self.engine,
            instructions=build_instructions(job, profile),
            tools=[PlatformTool(id="parallel_extract")],
            answer_format=TAILORED_RESUME_SCHEMA,
        )
        logger.debug("Tailoring instructions: %d chars", len(agent_request.instructions))
        started = time.monotonic()
        try:
            run = await run_to_completion(
                self.agent,
                agent_request,
                timeout=self.timeout,
                poll_interval=self.poll_interval,
                await_completion=self.await_completion,
            )
        except AgentFailure as e:
            await self.usage.arecord("tailor", user_id=user_id, started=started, error=str(e))
            raise

        if not run.usable:
            failure = _failure_from_run(run)
            await self.usage.arecord("tailor", user_id=user_id, started=started, run=run, error=str(failure))
            raise failure
        await self.usage.arecord("tailor", user_id=user_id, started=started, run=run)
        return run
