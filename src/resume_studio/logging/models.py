"""Usage logging data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class AgentRunLog(BaseModel):
    """Single usage log entry for one agent invocation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = "anonymous"
    timestamp: datetime = Field(default_factory=datetime.now)
    operation: str  # "tailor" | "merge" | "fetch_job" | "parse_resume"
    run_id: str | None = None
    status: str | None = None
    elapsed_seconds: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    success: bool = True
    error_message: str | None = None
