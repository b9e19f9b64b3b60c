"""Agent backend that runs requests directly against Claude.

Runs complete inside ``submit``; ``get`` hands the stored result back once.
Only the most recent runs are kept for that.
Tools are not executed here, so instructions that mention web research
are answered from the model's own knowledge.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections import OrderedDict

import anthropic
from tenacity import retry, stop_after_attempt, wait_exponential

from resume_studio.clients.agent_client import AgentRunClient
from resume_studio.errors import AgentFailure
from resume_studio.models.agent import (
    AgentRun,
    AgentRunRequest,
    HttpErrorDetail,
    RunErrorDetail,
    RunStatus,
    raw_answer_from,
)
from resume_studio.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

# Completed runs kept for replay through get(); oldest are evicted first
MAX_RETAINED_RUNS = 32

_SCHEMA_SYSTEM = (
    "Respond with a single JSON object that validates against this JSON Schema. "
    "Output only the JSON, no commentary.\n\n{schema}"
)


class AnthropicAgentClient(AgentRunClient):
    """Claude-backed agent with exponential-backoff retries."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float | None = None,
        max_tokens: int = 8192,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        if client is None:
            kwargs: dict = {}
            if api_key is not None:
                kwargs["api_key"] = api_key
            if timeout is not None:
                kwargs["timeout"] = timeout
            client = anthropic.AsyncAnthropic(**kwargs)
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self._runs: OrderedDict[str, AgentRun] = OrderedDict()
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def _call_api(self, prompt: str, system: str) -> anthropic.types.Message:
        kwargs: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0.0,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        return await self.client.messages.create(**kwargs)

    async def submit(self, request: AgentRunRequest, *, await_completion: bool = False) -> AgentRun:
        run_id = f"local-{uuid.uuid4().hex[:12]}"
        system = ""
        if request.answer_format is not None:
            system = _SCHEMA_SYSTEM.format(schema=json.dumps(request.answer_format, indent=2))

        logger.debug("Claude run %s: model=%s", run_id, self.model)
        try:
            message = await self._call_api(request.instructions, system)
        except anthropic.APIError as e:
            logger.error("Claude run %s failed", run_id, exc_info=True)
            run = AgentRun(
                run_id=run_id,
                status=RunStatus.FAILED,
                error=RunErrorDetail(
                    status=RunStatus.FAILED,
                    code=type(e).__name__,
                    message=str(e),
                ),
            )
            self._remember(run)
            return run

        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        self._token_log.append((self.model, input_tokens, output_tokens))
        logger.debug("Claude run %s: %d input, %d output tokens", run_id, input_tokens, output_tokens)

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        answer = raw_answer_from(text)
        if request.answer_format is not None and text.strip():
            try:
                answer = raw_answer_from(extract_json(text))
            except ValueError:
                logger.warning("Claude run %s returned non-JSON output", run_id)

        run = AgentRun(
            run_id=run_id,
            status=RunStatus.SUCCEEDED,
            answer=answer,
            usage={"input_tokens": input_tokens, "output_tokens": output_tokens},
        )
        self._remember(run)
        return run

    def _remember(self, run: AgentRun) -> None:
        self._runs[run.run_id] = run
        while len(self._runs) > MAX_RETAINED_RUNS:
            self._runs.popitem(last=False)

    async def get(self, run_id: str) -> AgentRun:
        try:
            return self._runs.pop(run_id)
        except KeyError:
            raise AgentFailure(
                f"Unknown run id {run_id}",
                detail=HttpErrorDetail(status=404, code="not_found", message="Run not found"),
                error_code="not_found",
            ) from None

    async def aclose(self) -> None:
        await self.client.close()

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary
