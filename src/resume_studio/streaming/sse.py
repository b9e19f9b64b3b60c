"""Server-sent event framing: one JSON object per ``data:`` frame."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from resume_studio.models.events import ProgressEvent, parse_event
from resume_studio.streaming.channel import EventChannel

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(event: ProgressEvent) -> str:
    return f"data: {json.dumps(event.to_wire())}\n\n"


async def encode_stream(channel: EventChannel) -> AsyncIterator[str]:
    async for event in channel:
        yield format_event(event)


def parse_frames(body: str) -> list[ProgressEvent]:
    """Parse a complete SSE body back into events. Non-data lines are ignored."""
    events = []
    for frame in body.split("\n\n"):
        data = [line[5:].lstrip() for line in frame.splitlines() if line.startswith("data:")]
        if data:
            events.append(parse_event(json.loads("\n".join(data))))
    return events
