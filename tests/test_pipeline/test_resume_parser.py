"""Tests for plain-text resume parsing."""

from __future__ import annotations

import json

import pytest

from resume_studio.errors import AgentFailure
from resume_studio.models.agent import RunStatus
from resume_studio.models.parsed_resume import ParsedResume
from resume_studio.pipeline.resume_parser import ResumeTextParser, parsed_resume_from

RESUME_TEXT = """Ada Lovelace
ada@example.com

Experience
Acme - Backend Engineer (2021 - Present)
- Built REST APIs
"""


@pytest.fixture
def parsed_answer() -> dict:
    return {
        "contactInfo": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": ""},
        "experience": [
            {"id": "exp-1", "company": "Acme", "position": "Backend Engineer",
             "startDate": "2021", "endDate": "Present", "bullets": ["Built REST APIs"]}
        ],
        "education": [],
        "skills": {"format": "categorized", "categories": [{"name": "Languages", "skills": ["Python"]}]},
        "projects": [{"id": "proj-1", "name": "JARVIS", "technologies": ["Python"]}],
        "sections": [{"title": "Experience", "content": "Acme", "order": 0}],
    }


@pytest.fixture
def parser(mock_agent) -> ResumeTextParser:
    return ResumeTextParser(mock_agent, poll_interval=0.01)


class TestResumeTextParser:
    async def test_parses_object_answer(self, parser, mock_agent, run_factory, parsed_answer):
        mock_agent.submit.return_value = run_factory(parsed_answer)

        parsed = await parser.parse(RESUME_TEXT)

        assert parsed.full_text == RESUME_TEXT
        assert parsed.contact.name == "Ada Lovelace"
        assert parsed.contact.phone is None
        assert parsed.experience[0].end_date is None
        assert parsed.skills.categories[0].skills == ["Python"]
        assert parsed.projects[0].name == "JARVIS"
        request = mock_agent.submit.await_args.args[0]
        assert request.answer_format is None
        assert RESUME_TEXT in request.instructions

    async def test_parses_fenced_text_answer(self, parser, mock_agent, run_factory, parsed_answer):
        mock_agent.submit.return_value = run_factory(f"```json\n{json.dumps(parsed_answer)}\n```")
        parsed = await parser.parse(RESUME_TEXT)
        assert parsed.experience[0].company == "Acme"

    @pytest.mark.parametrize("answer", ["I cannot parse this", None])
    async def test_unusable_answer_falls_back(self, parser, mock_agent, run_factory, answer):
        mock_agent.submit.return_value = run_factory(answer)
        parsed = await parser.parse(RESUME_TEXT)
        assert parsed == ParsedResume.fallback(RESUME_TEXT)

    async def test_failed_run_falls_back(self, parser, mock_agent, run_factory):
        mock_agent.submit.return_value = run_factory(status=RunStatus.FAILED)
        parsed = await parser.parse(RESUME_TEXT)
        assert parsed.sections[0].title == "Resume"
        assert parsed.sections[0].content == RESUME_TEXT

    async def test_client_failure_falls_back(self, parser, mock_agent):
        mock_agent.submit.side_effect = AgentFailure("HTTP 500")
        parsed = await parser.parse(RESUME_TEXT)
        assert parsed.full_text == RESUME_TEXT
        assert parsed.experience == []

    async def test_timeout_falls_back(self, mock_agent, run_factory):
        mock_agent.submit.return_value = run_factory(status=RunStatus.RUNNING)
        mock_agent.get.return_value = run_factory(status=RunStatus.RUNNING)
        parser = ResumeTextParser(mock_agent, timeout=0.05, poll_interval=0.01)
        parsed = await parser.parse(RESUME_TEXT)
        assert parsed == ParsedResume.fallback(RESUME_TEXT)


class TestParsedResumeFrom:
    def test_flat_skill_list(self):
        parsed = parsed_resume_from({"skills": ["Python", 3, "Go"]}, "text")
        assert parsed.skills.format == "list"
        assert parsed.skills.skills == ["Python", "Go"]

    def test_salvages_bad_categories(self):
        parsed = parsed_resume_from(
            {"skills": {"format": "categorized", "skills": ["x"], "categories": [{"name": "Tools", "skills": ["Git", 1]}, "junk"]}},
            "text",
        )
        assert [(c.name, c.skills) for c in parsed.skills.categories] == [("Tools", ["Git"])]

    def test_garbage_fields_default(self):
        parsed = parsed_resume_from(
            {"contactInfo": "Ada", "experience": "nope", "sections": [{"title": "A", "order": "x"}, 5]},
            "text",
        )
        assert parsed.contact.name == ""
        assert parsed.experience == []
        assert parsed.sections == []
