"""The contract every agent backend implements, and the await/poll loop.

A backend accepts a schema-constrained run request and either completes it
inline or hands back a run id that can be polled with ``get``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from resume_studio.models.agent import (
    AgentRun,
    AgentRunRequest,
    RunStatus,
    TimeoutErrorDetail,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class AgentRunClient(ABC):
    """Asynchronous agent backend.

    Implementations raise ``AgentFailure`` for transport-level and HTTP
    failures; a run that the backend itself failed is returned with a
    non-success status instead.
    """

    @abstractmethod
    async def submit(self, request: AgentRunRequest, *, await_completion: bool = False) -> AgentRun:
        """Start a run. With ``await_completion`` the backend blocks until it ends."""

    @abstractmethod
    async def get(self, run_id: str) -> AgentRun:
        """Fetch the current state of a run."""

    async def aclose(self) -> None:
        """Release any underlying connections."""


async def run_to_completion(
    client: AgentRunClient,
    request: AgentRunRequest,
    *,
    timeout: float,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    await_completion: bool = False,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> AgentRun:
    """Drive a run to a terminal status within ``timeout`` seconds.

    Exceeding the ceiling yields a ``TIMED_OUT`` run rather than an
    exception, so callers treat it like any other failed status.
    """
    start = clock()

    def _timed_out(run_id: str) -> AgentRun:
        elapsed = clock() - start
        logger.warning("Agent run %s exceeded %.0fs ceiling", run_id, timeout)
        return AgentRun(
            run_id=run_id,
            status=RunStatus.TIMED_OUT,
            error=TimeoutErrorDetail(elapsed_seconds=round(elapsed, 3)),
        )

    try:
        run = await asyncio.wait_for(
            client.submit(request, await_completion=await_completion), timeout=timeout
        )
    except asyncio.TimeoutError:
        return _timed_out("unknown")

    logger.info("Agent run %s submitted (status=%s)", run.run_id, run.status.value)
    while not run.status.is_terminal:
        remaining = timeout - (clock() - start)
        if remaining <= 0:
            return _timed_out(run.run_id)
        await sleep(min(poll_interval, remaining))
        remaining = timeout - (clock() - start)
        if remaining <= 0:
            return _timed_out(run.run_id)
        try:
            run = await asyncio.wait_for(client.get(run.run_id), timeout=remaining)
        except asyncio.TimeoutError:
            return _timed_out(run.run_id)
        logger.debug("Agent run %s status=%s", run.run_id, run.status.value)

    logger.info(
        "Agent run %s finished with %s in %.1fs", run.run_id, run.status.value, clock() - start
    )
    return run
