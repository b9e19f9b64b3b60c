"""Tests for the structured output decoder."""

from __future__ import annotations

import json

import pytest

from resume_studio.models.agent import ObjectAnswer, OtherAnswer, TextAnswer
from resume_studio.models.resume import TailoredResume
from resume_studio.pipeline.output_decoder import (
    FRAMEWORKS_AND_TOOLS,
    TAILORED_RESUME_SCHEMA,
    TECHNICAL_SKILLS,
    build_entries,
    build_project,
    decode,
    decode_with_report,
    flatten,
)


class TestDecode:
    def test_full_answer(self, tailored_answer):
        resume = decode(ObjectAnswer(payload=tailored_answer))

        assert resume.contact.name == "Ada Lovelace"
        assert resume.contact.github == "https://github.com/ada"
        assert resume.contact.phone is None
        assert resume.full_text == (
            "Ada Lovelace\nada@example.com\n\nBackend engineer shipping Python services."
        )

        [exp] = resume.experience
        assert exp.id == "exp-0"
        assert exp.end_date is None  # "Present"
        assert exp.bullets == ["Built FastAPI services", "Cut p95 latency by 40%"]

        assert resume.education[0].field == "Computer Science"
        assert resume.projects[0].technologies == ["Python", "Whisper"]

        assert [c.name for c in resume.skills.categories] == [TECHNICAL_SKILLS, FRAMEWORKS_AND_TOOLS]
        assert resume.skills.categories[1].skills == ["FastAPI", "Docker"]

        assert resume.summary.total_changes == 2
        assert resume.summary.keywords_added == ["PostgreSQL"]
        assert resume.match_score == 87

    def test_accepts_plain_dict(self, tailored_answer):
        assert decode(tailored_answer) == decode(ObjectAnswer(payload=tailored_answer))

    def test_text_answer_with_fences(self, tailored_answer):
        text = f"```json\n{json.dumps(tailored_answer)}\n```"
        assert decode(TextAnswer(text=text)).match_score == 87

    def test_native_arrays_accepted(self, tailored_answer):
        tailored_answer["experienceJson"] = [{"company": "Acme", "position": "Dev"}]
        resume, notes = decode_with_report(tailored_answer)
        assert resume.experience[0].company == "Acme"
        assert notes == []

    def test_malformed_array_defaults_with_note(self, tailored_answer):
        tailored_answer["experienceJson"] = "[{not json"
        resume, notes = decode_with_report(tailored_answer)
        assert resume.experience == []
        assert "experienceJson could not be parsed" in notes
        # The rest still decodes
        assert resume.projects[0].name == "JARVIS"

    def test_unusable_items_skipped(self):
        resume, notes = decode_with_report(
            {"projectsJson": json.dumps([{"name": "A"}, "junk", 3, {"name": "B"}])}
        )
        assert [p.name for p in resume.projects] == ["A", "B"]
        assert "projectsJson contained 2 unusable entries" in notes

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "not json at all",
            OtherAnswer(value=[1, 2]),
            {},
            TextAnswer(text="[1, 2]"),
            {"experienceJson": "[" * 100_000},
            TextAnswer(text="{" + "[" * 100_000),
        ],
    )
    def test_total_on_garbage(self, raw):
        resume = decode(raw)
        assert isinstance(resume, TailoredResume)
        assert resume.experience == []
        assert resume.match_score == 0
        assert len(resume.skills.categories) == 2

    @pytest.mark.parametrize(
        "value, expected",
        [
            (150, 100), (-5, 0), (72.6, 73), ("85%", 85), ("n/a", 0), (True, 0), (None, 0),
            ("inf", 0), ("-Infinity", 0), (float("inf"), 0), (float("nan"), 0), ("NaN", 0),
            (10**400, 100),
        ],
    )
    def test_match_score_coercion(self, value, expected):
        assert decode({"matchScore": value}).match_score == expected

    def test_non_finite_score_in_text_answer(self):
        resume, notes = decode_with_report(TextAnswer(text='{"name": "Ada", "matchScore": Infinity}'))
        assert resume.contact.name == "Ada"
        assert resume.match_score == 0
        assert "matchScore was not a number" in notes

    def test_non_numeric_score_noted(self):
        _, notes = decode_with_report({"matchScore": "high"})
        assert "matchScore was not a number" in notes

    def test_non_string_fields_coerced(self):
        resume = decode({"name": 42, "email": ["x"], "keyImprovements": "single"})
        assert resume.contact.name == "42"
        assert resume.contact.email == ""
        assert resume.summary.key_improvements == ["single"]
        assert resume.summary.total_changes == 1


class TestFlatten:
    def test_decode_is_idempotent(self, tailored_answer):
        resume = decode(tailored_answer)
        assert decode(flatten(resume)) == resume

    def test_idempotent_with_warnings(self):
        resume = decode({"name": "Ada", "warnings": ["experienceJson could not be parsed"]})
        again = decode(flatten(resume))
        assert again == resume
        assert again.summary.warnings == ["experienceJson could not be parsed"]

    def test_flat_shape_matches_schema(self, tailored_answer):
        flat = flatten(decode(tailored_answer))
        allowed = set(TAILORED_RESUME_SCHEMA["properties"]) | {"warnings"}
        assert set(flat) <= allowed
        assert isinstance(flat["experienceJson"], str)


class TestBuilders:
    def test_build_project_defaults_id(self):
        project = build_project({"name": "X", "technologies": ["Go", "", 3]}, 4)
        assert project.id == "proj-4"
        assert project.technologies == ["Go", "3"]

    def test_build_entries_empty_inputs(self):
        notes: list[str] = []
        assert build_entries(None, "projectsJson", build_project, notes) == []
        assert build_entries("", "projectsJson", build_project, notes) == []
        assert notes == []
