"""Types at the agent boundary: run requests, run state, raw answers, errors."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self not in (RunStatus.QUEUED, RunStatus.RUNNING)


class PlatformTool(BaseModel):
    type: Literal["platform"] = "platform"
    id: str
    options: dict[str, Any] = Field(default_factory=dict)


class AgentRunRequest(BaseModel):
    engine: str
    instructions: str
    tools: list[PlatformTool] = Field(default_factory=list)
    answer_format: dict[str, Any] | None = None

    def to_payload(self, await_completion: bool) -> dict[str, Any]:
        data: dict[str, Any] = {
            "instructions": self.instructions,
            "tools": [t.model_dump() for t in self.tools],
        }
        if self.answer_format is not None:
            data["answerFormat"] = self.answer_format
        return {
            "engine": self.engine,
            "input": data,
            "options": {"awaitCompletion": await_completion},
        }


# --- Raw answers: only the decoders interpret these ---


class ObjectAnswer(BaseModel):
    kind: Literal["object"] = "object"
    payload: dict[str, Any]


class TextAnswer(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class OtherAnswer(BaseModel):
    kind: Literal["other"] = "other"
    value: Any = None


RawAnswer = Annotated[
    Union[ObjectAnswer, TextAnswer, OtherAnswer],
    Field(discriminator="kind"),
]


def raw_answer_from(value: Any) -> RawAnswer | None:
    """Classify an untyped answer payload; ``None`` when there is no answer."""
    if value is None:
        return None
    if isinstance(value, dict):
        return ObjectAnswer(payload=value) if value else None
    if isinstance(value, str):
        return TextAnswer(text=value) if value.strip() else None
    return OtherAnswer(value=value)


# --- Error shapes reported by agent backends ---


class HttpErrorDetail(BaseModel):
    kind: Literal["http"] = "http"
    status: int
    code: str | None = None
    message: str = ""


class RunErrorDetail(BaseModel):
    kind: Literal["run"] = "run"
    status: RunStatus
    code: str | None = None
    message: str = ""


class TimeoutErrorDetail(BaseModel):
    kind: Literal["timeout"] = "timeout"
    elapsed_seconds: float


class TransportErrorDetail(BaseModel):
    kind: Literal["transport"] = "transport"
    message: str = ""


AgentErrorDetail = Annotated[
    Union[HttpErrorDetail, RunErrorDetail, TimeoutErrorDetail, TransportErrorDetail],
    Field(discriminator="kind"),
]


class AgentRun(BaseModel):
    run_id: str
    status: RunStatus
    answer: RawAnswer | None = None
    reasoning: Any = None
    error: AgentErrorDetail | None = None
    usage: dict[str, int] | None = None  # input_tokens / output_tokens when known

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    @property
    def usable(self) -> bool:
        return self.succeeded and self.answer is not None
