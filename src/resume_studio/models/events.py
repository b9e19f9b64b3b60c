"""Progress events streamed while a resume is being tailored."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from resume_studio.models.base import WireModel
from resume_studio.models.profile import ProfileSnapshot
from resume_studio.models.resume import TailoredResume


class Phase(str, Enum):
    INIT = "init"
    LOADING_PROFILE = "loading_profile"
    RESEARCHING = "researching"
    TAILORING = "tailoring"
    VALIDATING = "validating"
    COMPLETE = "complete"

    @property
    def rank(self) -> int:
        return list(Phase).index(self)


class PhaseEvent(WireModel):
    type: Literal["phase"] = "phase"
    phase: Phase
    progress: int = Field(ge=0, le=100)


class ThoughtEvent(WireModel):
    type: Literal["thought"] = "thought"
    text: str = Field(alias="thought")
    phase: Phase
    progress: int = Field(ge=0, le=100)


class CompleteEvent(WireModel):
    type: Literal["complete"] = "complete"
    result: TailoredResume
    original_resume: ProfileSnapshot | None = None


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str
    debug: dict[str, Any] | None = None


ProgressEvent = Annotated[
    Union[PhaseEvent, ThoughtEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[ProgressEvent] = TypeAdapter(ProgressEvent)


def parse_event(data: dict[str, Any]) -> ProgressEvent:
    return _event_adapter.validate_python(data)


def is_terminal(event: ProgressEvent) -> bool:
    return isinstance(event, (CompleteEvent, ErrorEvent))
