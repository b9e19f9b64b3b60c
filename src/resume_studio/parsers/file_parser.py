"""Plain-text extraction from resume and job description files."""

import re
from pathlib import Path

SUPPORTED_SUFFIXES = (".pdf", ".docx", ".txt", ".md")

# Icons that exported resumes put in front of contact details
_ICON_PATTERN = re.compile(
    "[\U0001f4e7\U0001f4de\U0001f4cd\U0001f4bc\U0001f4c5\U0001f393"
    "\U0001f517\U0001f310\U0001f4f1\u260e\u2709]\\s*"
)
_INVISIBLE = re.compile("[\u200b\u200c\u200d\u00ad\u2060\ufeff]")
_BULLETS = re.compile("^(\\s*)[\u25cf\u2022\u25e6\u25c6\u25a0\u25aa\u25cb]\\s*", flags=re.MULTILINE)


def normalize_text(text: str) -> str:
    """Strip export artifacts, unify bullets as "- " and collapse blank runs."""
    text = _INVISIBLE.sub("", text)
    text = _ICON_PATTERN.sub("", text)
    text = _BULLETS.sub(r"\1- ", text)
    lines = [re.sub(r"[ \t]+", " ", line).rstrip() for line in text.splitlines()]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def read_resume_file(file_path: str | Path) -> str:
    """Return the text of a PDF, DOCX, TXT or MD resume."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        raw = _read_pdf(path)
    elif suffix == ".docx":
        raw = _read_docx(path)
    elif suffix in (".txt", ".md"):
        raw = path.read_text(encoding="utf-8")
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")
    return normalize_text(raw)


def read_job_description_file(file_path: str | Path) -> str:
    return normalize_text(Path(file_path).read_text(encoding="utf-8"))


def _read_pdf(path: Path) -> str:
    import fitz  # pymupdf

    with fitz.open(str(path)) as doc:
        return "\n".join(page.get_text() for page in doc)


def _read_docx(path: Path) -> str:
    from docx import Document

    document = Document(str(path))
    paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                paragraphs.append(" | ".join(cells))
    return "\n".join(paragraphs)
