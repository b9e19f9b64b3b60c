"""Wires the configured collaborators together once per process."""

from __future__ import annotations

from dataclasses import dataclass

from resume_studio.auth import TokenAuthenticator
from resume_studio.clients.agent_client import AgentRunClient
from resume_studio.clients.factory import create_agent_client
from resume_studio.config import AppConfig
from resume_studio.logging.usage_store import UsageRecorder, UsageStore
from resume_studio.pipeline.job_fetcher import JobPostingFetcher
from resume_studio.pipeline.merge_engine import MergeReconciliationEngine
from resume_studio.pipeline.orchestrator import TailoringOrchestrator
from resume_studio.pipeline.profile_aggregator import ProfileAggregator
from resume_studio.pipeline.resume_parser import ResumeTextParser
from resume_studio.store.profile_store import ProfileStore, SQLiteProfileStore
from resume_studio.utils.rate_limit import RateLimiter


@dataclass
class Services:
    config: AppConfig
    store: ProfileStore
    agent: AgentRunClient
    usage_store: UsageStore | None
    authenticator: TokenAuthenticator
    orchestrator: TailoringOrchestrator
    merge_engine: MergeReconciliationEngine
    job_fetcher: JobPostingFetcher
    resume_parser: ResumeTextParser
    limiters: dict[str, RateLimiter]


def build_services(
    config: AppConfig,
    *,
    store: ProfileStore | None = None,
    agent_client: AgentRunClient | None = None,
    usage_store: UsageStore | None = None,
) -> Services:
    if store is None:
        store = SQLiteProfileStore(config.store.resolved_db_path)
    if agent_client is None:
        agent_client = create_agent_client(config.agent)
    if usage_store is None and config.usage.enabled:
        usage_store = UsageStore(config.usage.resolved_db_path)

    usage = UsageRecorder(usage_store)
    engine = config.agent.engine
    pipeline = config.pipeline
    authenticator = TokenAuthenticator(store)

    return Services(
        config=config,
        store=store,
        agent=agent_client,
        usage_store=usage_store,
        authenticator=authenticator,
        orchestrator=TailoringOrchestrator(
            ProfileAggregator(store),
            agent_client,
            authenticator=authenticator,
            engine=engine,
            timeout=pipeline.tailor_timeout,
            poll_interval=pipeline.poll_interval,
            usage=usage,
            dev_mode=config.server.dev_mode,
        ),
        merge_engine=MergeReconciliationEngine(
            agent_client,
            store,
            engine=engine,
            timeout=pipeline.merge_timeout,
            poll_interval=pipeline.poll_interval,
            usage=usage,
        ),
        job_fetcher=JobPostingFetcher(
            agent_client,
            engine=engine,
            timeout=pipeline.fetch_timeout,
            poll_interval=pipeline.poll_interval,
            usage=usage,
        ),
        resume_parser=ResumeTextParser(
            agent_client,
            engine=engine,
            timeout=pipeline.parse_timeout,
            poll_interval=pipeline.poll_interval,
            usage=usage,
        ),
        limiters={
            "streaming": RateLimiter(config.rate_limit.streaming_per_minute),
            "ai": RateLimiter(config.rate_limit.ai_per_minute),
            "fetch": RateLimiter(config.rate_limit.fetch_per_minute),
        },
    )
