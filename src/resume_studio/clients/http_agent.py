"""Agent backend speaking a hosted run API over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from resume_studio.clients.agent_client import AgentRunClient
from resume_studio.errors import AgentFailure
from resume_studio.models.agent import (
    AgentRun,
    AgentRunRequest,
    HttpErrorDetail,
    RunErrorDetail,
    RunStatus,
    TransportErrorDetail,
    raw_answer_from,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.subconscious.dev"


def _parse_status(value: Any) -> RunStatus | None:
    try:
        return RunStatus(str(value).lower())
    except ValueError:
        return None


def _error_fields(body: Any) -> tuple[str | None, str]:
    """Pull ``(code, message)`` out of the error bodies the API is known to send.

    Shapes: ``{"error": {"code", "message"}}``, ``{"error": "text"}``,
    ``{"code", "message"}`` and plain text.
    """
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("code"), str(error.get("message") or "")
        if isinstance(error, str):
            return body.get("code"), error
        if "message" in body:
            return body.get("code"), str(body["message"])
    if isinstance(body, str):
        return None, body[:500]
    return None, ""


def run_from_payload(payload: dict[str, Any]) -> AgentRun:
    """Map a run document from the API into an ``AgentRun``."""
    run_id = str(payload.get("runId") or payload.get("run_id") or "")
    status = _parse_status(payload.get("status"))
    result = payload.get("result") if isinstance(payload.get("result"), dict) else {}
    error = None

    if status is None:
        # A completed inline result may omit the status field
        status = RunStatus.SUCCEEDED if result.get("answer") is not None else RunStatus.FAILED
    if status in (RunStatus.FAILED, RunStatus.CANCELED, RunStatus.TIMED_OUT):
        code, message = _error_fields(payload)
        error = RunErrorDetail(status=status, code=code, message=message)

    usage = payload.get("usage")
    if not (isinstance(usage, dict) and all(isinstance(v, int) for v in usage.values())):
        usage = None
    return AgentRun(
        run_id=run_id,
        status=status,
        answer=raw_answer_from(result.get("answer")),
        reasoning=result.get("reasoning"),
        error=error,
        usage=usage,
    )


class HttpAgentClient(AgentRunClient):
    """Async client for the hosted agent run API.

    Transport errors are retried with exponential backoff; HTTP error
    statuses are not, since the API reports them deterministically.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise AgentFailure(
                "Agent API key is not configured",
                user_message="AI service is not configured.",
                error_code="missing_api_key",
            )
        self.max_retries = max_retries
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(min=1, max=10),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error("Agent API %s %s failed: %s", method, path, e)
            raise AgentFailure(
                f"Agent API transport error: {e}",
                detail=TransportErrorDetail(message=str(e)),
                error_code="transport_error",
            ) from e

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        if response.is_error:
            code, message = _error_fields(body)
            logger.error("Agent API %s %s -> %d %s", method, path, response.status_code, message)
            raise AgentFailure(
                f"Agent API returned {response.status_code}: {message}",
                detail=HttpErrorDetail(status=response.status_code, code=code, message=message),
                error_code=code or f"http_{response.status_code}",
            )
        if not isinstance(body, dict):
            raise AgentFailure(
                "Agent API returned a non-object body",
                detail=HttpErrorDetail(status=response.status_code, message=str(body)[:500]),
                error_code="bad_response",
            )
        return body

    async def submit(self, request: AgentRunRequest, *, await_completion: bool = False) -> AgentRun:
        logger.debug("Submitting agent run (engine=%s, await=%s)", request.engine, await_completion)
        body = await self._request("POST", "/v1/runs", json=request.to_payload(await_completion))
        run = run_from_payload(body)
        if not run.run_id:
            raise AgentFailure(
                "Agent API did not return a run id",
                detail=HttpErrorDetail(status=200, message="missing runId"),
                error_code="bad_response",
            )
        return run

    async def get(self, run_id: str) -> AgentRun:
        body = await self._request("GET", f"/v1/runs/{run_id}")
        body.setdefault("runId", run_id)
        return run_from_payload(body)

    async def aclose(self) -> None:
        await self._client.aclose()
