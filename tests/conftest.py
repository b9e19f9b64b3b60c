"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from resume_studio.clients.agent_client import AgentRunClient
from resume_studio.models.agent import AgentRun, RunStatus, raw_answer_from
from resume_studio.models.job import JobDescription, TailorRequest
from resume_studio.store.profile_store import SQLiteProfileStore

USER_ID = "user-1"


def make_run(
    answer: Any = None,
    status: RunStatus = RunStatus.SUCCEEDED,
    run_id: str = "run-1",
    **kwargs: Any,
) -> AgentRun:
    """Build an AgentRun as a backend would report it."""
    return AgentRun(run_id=run_id, status=status, answer=raw_answer_from(answer), **kwargs)


@pytest.fixture
def run_factory():
    return make_run


@pytest.fixture
def mock_agent() -> AgentRunClient:
    """Create a mock agent client whose runs complete inline."""
    client = AsyncMock(spec=AgentRunClient)
    client.submit = AsyncMock(return_value=make_run({}))
    client.get = AsyncMock(return_value=make_run({}))
    client.aclose = AsyncMock(return_value=None)
    return client


@pytest.fixture
def profile_store(tmp_path: Path) -> SQLiteProfileStore:
    return SQLiteProfileStore(db_path=tmp_path / "profile.db")


@pytest.fixture
def seeded_store(profile_store: SQLiteProfileStore) -> SQLiteProfileStore:
    """A store holding one complete profile for USER_ID."""
    profile_store.upsert_contact(
        USER_ID,
        full_name="Ada Lovelace",
        email="ada@example.com",
        github_url="https://github.com/ada",
        professional_summary="Backend engineer focused on data pipelines.",
    )
    profile_store.add_experience(
        USER_ID,
        company="Acme",
        position="Backend Engineer",
        start_date="2021-03-01",
        description="Built REST APIs in FastAPI\nCut p95 latency by 40%",
    )
    profile_store.add_education(
        USER_ID,
        institution="State University",
        degree="BSc",
        field_of_study="Computer Science",
        end_date="2020-06-01",
        highlights=["Dean's list"],
    )
    profile_store.insert_project(
        USER_ID,
        {
            "id": "p1",
            "name": "JARVIS",
            "description": "Voice assistant",
            "bullets": ["Wake-word detection"],
            "skills": ["Python"],
            "url": "https://github.com/ada/jarvis",
        },
    )
    profile_store.add_skill(USER_ID, "Python", "Languages")
    profile_store.add_skill(USER_ID, "Docker")
    return profile_store


@pytest.fixture
def job_description() -> JobDescription:
    return JobDescription(
        title="Senior Backend Engineer",
        company="Globex",
        full_text="We need a backend engineer with Python, FastAPI and PostgreSQL.",
        requirements=["Python", "FastAPI"],
        keywords=["PostgreSQL"],
    )


@pytest.fixture
def tailor_request(job_description: JobDescription) -> TailorRequest:
    return TailorRequest(job_description=job_description)


@pytest.fixture
def tailored_answer() -> dict:
    """A flattened tailoring answer as the agent returns it."""
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "github": "https://github.com/ada",
        "professionalSummary": "Backend engineer shipping Python services.",
        "experienceJson": json.dumps([
            {
                "company": "Acme",
                "position": "Backend Engineer",
                "startDate": "2021-03-01",
                "endDate": "Present",
                "bullets": ["Built FastAPI services", "Cut p95 latency by 40%"],
            }
        ]),
        "educationJson": json.dumps([
            {"institution": "State University", "degree": "BSc", "field": "Computer Science"}
        ]),
        "projectsJson": json.dumps([
            {"name": "JARVIS", "technologies": "Python, Whisper", "bullets": ["Wake word"]}
        ]),
        "technicalSkills": ["Python", "PostgreSQL"],
        "frameworksAndTools": ["FastAPI", "Docker"],
        "keyImprovements": ["Led with API work", "Added PostgreSQL keyword"],
        "keywordsAdded": ["PostgreSQL"],
        "matchScore": 87,
    }
