"""Project reconciliation: decide add / update / skip for extracted projects.

Tier 1 asks the agent to classify each new project against the stored ones
and cross-checks every decision against the inputs. Tier 2 is a
deterministic name/URL matcher used whenever the agent tier is unavailable,
times out, or answers with something unusable. Only the agent may propose
field updates; the fallback only prevents duplicate inserts.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from resume_studio.clients.agent_client import AgentRunClient, run_to_completion
from resume_studio.errors import AgentFailure
from resume_studio.logging.usage_store import UsageRecorder
from resume_studio.models.agent import AgentRunRequest, ObjectAnswer, TextAnswer
from resume_studio.models.merge import (
    AddDecision,
    ApplyCounts,
    MergeDecision,
    MergeResponse,
    MergeResult,
    ParsedProject,
    ProjectPatch,
    SkipDecision,
    StoredProject,
    UpdateDecision,
    summarize_counts,
)
from resume_studio.store.profile_store import ProfileStore
from resume_studio.utils.dates import to_iso_date
from resume_studio.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "tim-large"

MERGE_PROMPT = """\
You are an expert at comparing and merging project data.

## EXISTING PROJECTS (already in user's profile)
{existing_projects}

## NEW PROJECTS (extracted from resume)
{new_projects}

## YOUR TASK
For each NEW project, determine if it matches any EXISTING project and what action to take:

1. **ADD**: The project is truly new - no existing project matches it semantically
2. **UPDATE**: The project matches an existing one, but has NEW/BETTER information to merge
3. **SKIP**: The project matches an existing one and has NO new information

## MATCHING CRITERIA
Consider projects as matching if:
- Same project name (exact or very similar, e.g., "JARVIS AI" matches "JARVIS AI Companion")
- Same project URL
- Same core description/purpose even if names differ slightly
- Same technologies AND similar functionality

## RULES
1. Be conservative - only UPDATE if new data is genuinely better/more complete
2. Combine skills arrays when updating (union of both)
3. Keep longer/more detailed descriptions
4. Keep more bullet points (union if they describe different aspects)
5. Never invent information that is in neither project
6. Always provide a clear reason for each decision

Analyze the projects and provide your decisions."""

MERGE_DECISIONS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "title": "MergeDecisions",
    "properties": {
        "decisions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": ["add", "update", "skip"],
                        "description": "The action to take for this project",
                    },
                    "newProjectName": {
                        "type": "string",
                        "description": "Name of the new project being evaluated",
                    },
                    "existingProjectId": {
                        "type": "string",
                        "description": "ID of matched existing project",
                    },
                    "reason": {"type": "string", "description": "Brief explanation of the decision"},
                    "mergedData": {
                        "type": "object",
                        "properties": {
                            "description": {"type": "string", "description": "Merged description if better"},
                            "bullets": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Merged bullets if better",
                            },
                            "skills": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Combined skills array",
                            },
                            "url": {"type": "string", "description": "URL if new one is better"},
                        },
                        "description": "Only for 'update' action - fields to update in existing project",
                    },
                },
                "required": ["action", "newProjectName", "reason"],
            },
        },
    },
    "required": ["decisions"],
}


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def _fallback_decision(project: ParsedProject, existing: list[StoredProject]) -> MergeDecision:
    name = _normalize(project.name)
    url = _normalize(project.url)
    for candidate in existing:
        other = _normalize(candidate.name)
        other_url = _normalize(candidate.url)
        if name and other and (name == other or name in other or other in name):
            return SkipDecision(
                project=project,
                matched_with=candidate.id,
                reason=f'Matched with existing project "{candidate.name}" by name',
            )
        if url and other_url and url == other_url:
            return SkipDecision(
                project=project,
                matched_with=candidate.id,
                reason=f'Matched with existing project "{candidate.name}" by URL',
            )
    return AddDecision(project=project, reason="No matching project found")


def fallback_match(
    new_projects: list[ParsedProject], existing_projects: list[StoredProject]
) -> MergeResult:
    """Deterministic tier: skip on name containment or URL equality, else add."""
    result = MergeResult(tier="fallback")
    for project in new_projects:
        result.record(_fallback_decision(project, existing_projects))
    return result


def _str_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _patch(merged: Any) -> ProjectPatch:
    if not isinstance(merged, dict):
        return ProjectPatch()
    description = merged.get("description")
    url = merged.get("url")
    return ProjectPatch(
        description=description.strip() or None if isinstance(description, str) else None,
        bullets=_str_list(merged.get("bullets")) or None,
        skills=_str_list(merged.get("skills")) or None,
        url=url.strip() or None if isinstance(url, str) else None,
    )


def _answer_payload(answer: Any) -> dict[str, Any] | None:
    if isinstance(answer, ObjectAnswer):
        return answer.payload
    if isinstance(answer, TextAnswer):
        try:
            parsed = extract_json(answer.text)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def parse_agent_decisions(
    payload: dict[str, Any] | None,
    new_projects: list[ParsedProject],
    existing_projects: list[StoredProject],
) -> MergeResult | None:
    """Map the agent's decisions back onto the inputs.

    Returns None when the answer has no ``decisions`` array. Decisions that
    name an unknown new project, reference an unknown existing project, or
    propose an empty update are discarded; new projects left without a
    decision get the deterministic decision.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("decisions"), list):
        return None

    existing_by_id = {p.id: p for p in existing_projects}
    decided: dict[int, MergeDecision] = {}
    discarded = 0

    for raw in payload["decisions"]:
        if not isinstance(raw, dict):
            discarded += 1
            continue
        name = raw.get("newProjectName")
        if not isinstance(name, str) and isinstance(raw.get("newProject"), dict):
            name = raw["newProject"].get("name")
        target = _normalize(name if isinstance(name, str) else None)
        index = next(
            (
                i
                for i, p in enumerate(new_projects)
                if i not in decided and _normalize(p.name) == target
            ),
            None,
        )
        if not target or index is None:
            discarded += 1
            continue

        project = new_projects[index]
        existing_id = raw.get("existingProjectId")
        if not isinstance(existing_id, str) and isinstance(raw.get("existingProject"), dict):
            existing_id = raw["existingProject"].get("id")
        existing = existing_by_id.get(existing_id) if isinstance(existing_id, str) else None
        reason = raw.get("reason") if isinstance(raw.get("reason"), str) and raw["reason"].strip() else None
        action = raw.get("action")

        if action == "add":
            decided[index] = AddDecision(project=project, reason=reason or "New project to add")
        elif action == "update" and existing is not None:
            patch = _patch(raw.get("mergedData"))
            if patch.is_empty:
                discarded += 1
                continue
            decided[index] = UpdateDecision(
                existing_id=existing.id,
                patch=patch,
                reason=reason or "Updating with new information",
            )
        elif action == "skip" and existing is not None:
            decided[index] = SkipDecision(
                project=project, matched_with=existing.id, reason=reason or "Already exists"
            )
        else:
            discarded += 1

    if discarded:
        logger.warning("Discarded %d merge decisions that did not match the inputs", discarded)

    result = MergeResult(tier="agent")
    for i, project in enumerate(new_projects):
        decision = decided.get(i)
        if decision is None:
            logger.info("No agent decision for %r, using fallback match", project.name)
            decision = _fallback_decision(project, existing_projects)
        result.record(decision)
    return result


class MergeReconciliationEngine:
    """Reconciles extracted projects against a user's stored projects."""

    def __init__(
        self,
        agent: AgentRunClient | None,
        store: ProfileStore | None = None,
        *,
        engine: str = DEFAULT_ENGINE,
        timeout: float = 60,
        poll_interval: float = 2.0,
        usage: UsageRecorder | None = None,
    ):
        self.agent = agent
        self.store = store
        self.engine = engine
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.usage = usage or UsageRecorder()

    async def reconcile(
        self,
        new_projects: list[ParsedProject],
        existing_projects: list[StoredProject],
        *,
        user_id: str | None = None,
    ) -> MergeResult:
        if not new_projects:
            return MergeResult(tier="direct")
        if not existing_projects:
            result = MergeResult(tier="direct")
            for project in new_projects:
                result.record(AddDecision(project=project, reason="No existing projects to compare"))
            return result

        if self.agent is None:
            logger.warning("No agent configured, using fallback project matching")
            return fallback_match(new_projects, existing_projects)

        result = await self._agent_tier(new_projects, existing_projects, user_id)
        if result is None:
            logger.warning("Agent merge unusable, using fallback project matching")
            return fallback_match(new_projects, existing_projects)
        return result

    async def _agent_tier(
        self,
        new_projects: list[ParsedProject],
        existing_projects: list[StoredProject],
        user_id: str | None,
    ) -> MergeResult | None:
        instructions = MERGE_PROMPT.format(
            existing_projects=json.dumps([p.to_wire() for p in existing_projects], indent=2),
            new_projects=json.dumps([p.to_wire() for p in new_projects], indent=2),
        )
        request = AgentRunRequest(
            engine=self.engine,
            instructions=instructions,
            answer_format=MERGE_DECISIONS_SCHEMA,
        )
        started = time.monotonic()
        try:
            run = await run_to_completion(
                self.agent, request, timeout=self.timeout, poll_interval=self.poll_interval
            )
        except AgentFailure as e:
            logger.warning("Agent merge failed: %s", e)
            await self.usage.arecord("merge", user_id=user_id, started=started, error=str(e))
            return None

        if not run.usable:
            logger.warning("Agent merge run %s ended with %s", run.run_id, run.status.value)
            await self.usage.arecord(
                "merge", user_id=user_id, started=started, run=run, error=f"status {run.status.value}"
            )
            return None

        result = parse_agent_decisions(_answer_payload(run.answer), new_projects, existing_projects)
        await self.usage.arecord(
            "merge",
            user_id=user_id,
            started=started,
            run=run,
            error=None if result is not None else "unparsable decisions",
        )
        return result

    def apply(self, user_id: str, result: MergeResult, auto_apply: bool) -> ApplyCounts:
        """Write the decisions, or with ``auto_apply=False`` only count them."""
        if not auto_apply:
            return result.planned_counts()
        if self.store is None:
            raise RuntimeError("Cannot apply merge decisions without a profile store")

        added = 0
        updated = 0
        for decision in result.add:
            project = decision.project
            try:
                self.store.insert_project(
                    user_id,
                    {
                        "name": project.name,
                        "description": project.description or None,
                        "bullets": project.bullets,
                        "skills": project.technologies,
                        "start_date": to_iso_date(project.start_date),
                        "end_date": to_iso_date(project.end_date),
                        "url": project.url or None,
                        "is_featured": False,
                    },
                )
                added += 1
            except Exception:
                logger.error("Error adding project %r", project.name, exc_info=True)

        for decision in result.update:
            try:
                if self.store.update_project(user_id, decision.existing_id, decision.patch.fields()):
                    updated += 1
                else:
                    logger.warning("Project %s not found for update", decision.existing_id)
            except Exception:
                logger.error("Error updating project %s", decision.existing_id, exc_info=True)

        return ApplyCounts(added=added, updated=updated, skipped=len(result.skip))

    async def merge_for_user(
        self, user_id: str, projects: list[ParsedProject], auto_apply: bool = True
    ) -> MergeResponse:
        """Load the stored projects, reconcile, and apply."""
        if not projects:
            return MergeResponse(
                message="No projects to merge",
                result=MergeResult(tier="direct"),
                applied=ApplyCounts(),
            )
        if self.store is None:
            raise RuntimeError("merge_for_user needs a profile store")

        existing = await asyncio.to_thread(self.store.list_projects, user_id)
        logger.info(
            "Merging %d projects for %s against %d existing", len(projects), user_id, len(existing)
        )
        result = await self.reconcile(projects, existing, user_id=user_id)
        applied = await asyncio.to_thread(self.apply, user_id, result, auto_apply)
        logger.info("Merge (%s tier) applied=%s", result.tier, applied.model_dump())
        return MergeResponse(message=summarize_counts(applied), result=result, applied=applied)
