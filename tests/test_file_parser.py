"""Tests for resume and job description file reading."""

from pathlib import Path

import pytest
from docx import Document

from resume_studio.parsers.file_parser import (
    normalize_text,
    read_job_description_file,
    read_resume_file,
)


class TestNormalizeText:
    def test_collapses_whitespace(self):
        result = normalize_text("Hello   World  \n\n\n\nLine 2\t\tend  ")
        assert result == "Hello World\n\nLine 2 end"

    def test_unifies_bullets(self):
        result = normalize_text("● Built APIs\n  • Nested item")
        assert result.splitlines() == ["- Built APIs", " - Nested item"]

    def test_removes_contact_icons_and_invisibles(self):
        result = normalize_text("\U0001f4e7 ada@example.com\n\U0001f4de 555-0100\u200b")
        assert result == "ada@example.com\n555-0100"


class TestReadResumeFile:
    def test_txt(self, tmp_path: Path):
        path = tmp_path / "resume.txt"
        path.write_text("Ada Lovelace\n\n\n\nExperience", encoding="utf-8")
        assert read_resume_file(path) == "Ada Lovelace\n\nExperience"

    def test_md(self, tmp_path: Path):
        path = tmp_path / "resume.MD"
        path.write_text("# Ada Lovelace\n## Projects", encoding="utf-8")
        assert "# Ada Lovelace" in read_resume_file(str(path))

    def test_docx_includes_tables(self, tmp_path: Path):
        document = Document()
        document.add_paragraph("Ada Lovelace")
        document.add_paragraph("   ")
        table = document.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Python"
        table.rows[0].cells[1].text = "Go"
        path = tmp_path / "resume.docx"
        document.save(str(path))

        assert read_resume_file(path) == "Ada Lovelace\nPython | Go"

    def test_unsupported_format(self, tmp_path: Path):
        path = tmp_path / "resume.xyz"
        path.write_text("test")
        with pytest.raises(ValueError, match="Unsupported file format"):
            read_resume_file(path)


def test_read_job_description_file(tmp_path: Path):
    path = tmp_path / "jd.txt"
    path.write_text("  Senior Engineer  \n\n\n\nRequirements: Python", encoding="utf-8")
    assert read_job_description_file(path) == "Senior Engineer\n\nRequirements: Python"
