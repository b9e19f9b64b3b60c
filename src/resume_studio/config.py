"""Application configuration loaded from config.yaml."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class AgentConfig:
    provider: str = "http"  # "http" | "anthropic"
    engine: str = "tim-large"
    base_url: str = "https://api.subconscious.dev"
    model: str = "claude-sonnet-4-5-20250929"
    request_timeout: int = 60
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.provider not in ("http", "anthropic"):
            raise ValueError(f"provider must be 'http' or 'anthropic', got {self.provider!r}")
        _check_range("request_timeout", self.request_timeout, 1, 600)
        _check_range("max_retries", self.max_retries, 0, 10)


@dataclass(frozen=True)
class PipelineConfig:
    poll_interval: float = 2.0
    tailor_timeout: int = 480
    merge_timeout: int = 60
    parse_timeout: int = 120
    fetch_timeout: int = 180

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        for name in ("tailor_timeout", "merge_timeout", "parse_timeout", "fetch_timeout"):
            _check_range(name, getattr(self, name), 1, 3600)


@dataclass(frozen=True)
class StoreConfig:
    db_path: str = "~/.resume-studio/profile.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class UsageConfig:
    enabled: bool = True
    db_path: str = "~/.resume-studio/usage.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class ServerConfig:
    dev_mode: bool = False
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        _check_range("port", self.port, 1, 65535)


@dataclass(frozen=True)
class RateLimitConfig:
    streaming_per_minute: int = 5
    ai_per_minute: int = 10
    fetch_per_minute: int = 20

    def __post_init__(self) -> None:
        for name in ("streaming_per_minute", "ai_per_minute", "fetch_per_minute"):
            _check_range(name, getattr(self, name), 1, 10_000)


@dataclass(frozen=True)
class AppConfig:
    agent: AgentConfig = field(default_factory=AgentConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


def _env_flag(name: str) -> bool | None:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        # Look for config.yaml relative to the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    server_raw = dict(raw.get("server", {}))
    if "cors_origins" in server_raw:
        server_raw["cors_origins"] = tuple(server_raw["cors_origins"] or ())
    dev_override = _env_flag("RESUME_STUDIO_DEV_MODE")
    if dev_override is not None:
        server_raw["dev_mode"] = dev_override

    return AppConfig(
        agent=AgentConfig(**raw.get("agent", {})),
        pipeline=PipelineConfig(**raw.get("pipeline", {})),
        store=StoreConfig(**raw.get("store", {})),
        usage=UsageConfig(**raw.get("usage", {})),
        server=ServerConfig(**server_raw),
        rate_limit=RateLimitConfig(**raw.get("rate_limit", {})),
    )
