"""Tests for the event channel and SSE framing."""

from __future__ import annotations

import json

from resume_studio.models.events import ErrorEvent, Phase, PhaseEvent, ThoughtEvent
from resume_studio.streaming.channel import EventChannel
from resume_studio.streaming.sse import SSE_HEADERS, encode_stream, format_event, parse_frames


class TestEventChannel:
    async def test_delivers_in_order_until_closed(self):
        channel = EventChannel()
        channel.send(PhaseEvent(phase=Phase.INIT, progress=5))
        channel.send(ThoughtEvent(text="Reading profile", phase=Phase.LOADING_PROFILE, progress=10))
        channel.close()

        events = await channel.drain()

        assert [e.type for e in events] == ["phase", "thought"]
        assert channel.sent == 2

    async def test_terminal_event_closes_channel(self):
        channel = EventChannel()
        assert channel.send(ErrorEvent(message="boom")) is True
        assert channel.closed

        assert channel.send(PhaseEvent(phase=Phase.TAILORING, progress=35)) is False
        assert channel.send(ErrorEvent(message="second")) is False
        assert channel.dropped == 2

        events = await channel.drain()
        assert len(events) == 1
        assert events[0].message == "boom"

    async def test_close_is_idempotent(self):
        channel = EventChannel()
        channel.close()
        channel.close()
        assert await channel.drain() == []


class TestSseFraming:
    def test_format_event(self):
        frame = format_event(ThoughtEvent(text="Analyzing", phase=Phase.RESEARCHING, progress=20))
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        payload = json.loads(frame[len("data: "):])
        assert payload == {"type": "thought", "thought": "Analyzing", "phase": "researching", "progress": 20}

    def test_error_event_omits_missing_debug(self):
        payload = json.loads(format_event(ErrorEvent(message="nope"))[6:])
        assert payload == {"type": "error", "message": "nope"}

    async def test_encode_stream_and_parse_back(self):
        channel = EventChannel()
        channel.send(PhaseEvent(phase=Phase.INIT, progress=5))
        channel.send(ErrorEvent(message="failed", debug={"runId": "r1"}))

        body = "".join([frame async for frame in encode_stream(channel)])
        events = parse_frames(body)

        assert isinstance(events[0], PhaseEvent)
        assert events[0].phase is Phase.INIT
        assert isinstance(events[1], ErrorEvent)
        assert events[1].debug == {"runId": "r1"}

    def test_parse_frames_ignores_comments(self):
        body = ": keep-alive\n\ndata: {\"type\": \"phase\", \"phase\": \"init\", \"progress\": 5}\n\n"
        assert len(parse_frames(body)) == 1

    def test_headers_disable_buffering(self):
        assert SSE_HEADERS["Cache-Control"] == "no-cache"
        assert SSE_HEADERS["X-Accel-Buffering"] == "no"
