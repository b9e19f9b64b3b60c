"""Build the configured agent backend."""

from __future__ import annotations

import os

from resume_studio.clients.agent_client import AgentRunClient
from resume_studio.clients.anthropic_agent import AnthropicAgentClient
from resume_studio.clients.http_agent import HttpAgentClient
from resume_studio.config import AgentConfig


def create_agent_client(config: AgentConfig) -> AgentRunClient:
    if config.provider == "anthropic":
        return AnthropicAgentClient(
            os.environ.get("ANTHROPIC_API_KEY"),
            model=config.model,
            timeout=config.request_timeout,
        )
    return HttpAgentClient(
        os.environ.get("AGENT_API_KEY", ""),
        base_url=config.base_url,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )
