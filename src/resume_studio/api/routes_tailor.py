"""Streaming tailoring endpoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from resume_studio.api.deps import get_services, rate_limit
from resume_studio.errors import InvalidRequestError
from resume_studio.pipeline.orchestrator import TailoringOrchestrator
from resume_studio.services import Services
from resume_studio.streaming.channel import EventChannel
from resume_studio.streaming.sse import SSE_HEADERS, format_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tailor", tags=["tailor"])


async def stream_frames(channel: EventChannel, task: asyncio.Task) -> AsyncIterator[str]:
    """SSE frames for ``channel``; the run in ``task`` is cancelled if the client leaves early."""
    try:
        async for event in channel:
            yield format_event(event)
    finally:
        if not task.done():
            logger.info("Tailor stream closed early, cancelling run")
            task.cancel()
        channel.close()


@router.post("/stream", dependencies=[Depends(rate_limit("streaming"))])
async def tailor_stream(request: Request, services: Services = Depends(get_services)):
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidRequestError("Request body must be JSON") from e
    tailor_request = TailoringOrchestrator.validate_request(payload)

    channel = EventChannel()
    task = asyncio.create_task(
        services.orchestrator.run(
            tailor_request,
            channel,
            authorization=request.headers.get("authorization"),
        )
    )

    return StreamingResponse(
        stream_frames(channel, task), media_type="text/event-stream", headers=SSE_HEADERS
    )
