"""Normalise the loose date strings found in resumes to ISO dates."""

from __future__ import annotations

import re
from datetime import datetime

_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m",
    "%Y/%m",
    "%m/%Y",
    "%b %Y",
    "%B %Y",
    "%b. %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y",
)

_CURRENT_WORDS = {"present", "current", "now", "ongoing", "today"}


def is_current_marker(raw: str | None) -> bool:
    return raw is not None and raw.strip().lower() in _CURRENT_WORDS


def to_iso_date(raw: str | None) -> str | None:
    """Return ``YYYY-MM-DD`` for a parseable date, else ``None``.

    Handles "2024-01-15", "2024-01", "Jan 2024", "January 2024", "Sept 2023",
    "05/2022" and bare years. Missing day/month default to the first.
    """
    if not raw:
        return None
    text = re.sub(r"\s+", " ", raw.strip())
    if not text or is_current_marker(text):
        return None
    # "Sept" is common but not understood by strptime
    text = re.sub(r"^Sept\b", "Sep", text, flags=re.IGNORECASE)
    # ISO timestamps
    if "T" in text and text[:4].isdigit():
        text = text.split("T", 1)[0]

    for fmt in _FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return None
