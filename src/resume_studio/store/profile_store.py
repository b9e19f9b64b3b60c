"""Profile record storage.

``ProfileStore`` is the boundary the pipeline reads and writes through;
``SQLiteProfileStore`` is the bundled implementation. Reads return raw rows
as dicts (projects as ``StoredProject``); shaping them into snapshot
entries is the aggregator's job.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import sqlite3
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from resume_studio.models.merge import StoredProject

DEFAULT_DB_PATH = Path.home() / ".resume-studio" / "profile.db"

_PROJECT_PATCH_COLUMNS = ("description", "bullets", "skills", "url")


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ProfileStore(ABC):
    """Typed queries over a user's stored profile."""

    @abstractmethod
    def get_contact(self, user_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    def list_experience(self, user_id: str) -> list[dict[str, Any]]: ...

    @abstractmethod
    def list_education(self, user_id: str) -> list[dict[str, Any]]: ...

    @abstractmethod
    def list_projects(self, user_id: str) -> list[StoredProject]: ...

    @abstractmethod
    def list_skills(self, user_id: str) -> list[dict[str, Any]]: ...

    @abstractmethod
    def insert_project(self, user_id: str, fields: dict[str, Any]) -> StoredProject: ...

    @abstractmethod
    def update_project(self, user_id: str, project_id: str, fields: dict[str, Any]) -> bool:
        """Patch a stored project; False when it does not exist for this user."""

    @abstractmethod
    def user_for_token(self, token: str) -> str | None: ...


class SQLiteProfileStore(ProfileStore):
    """SQLite-backed profile store. Connections are opened per call."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS user_profiles (
                    user_id TEXT PRIMARY KEY,
                    full_name TEXT,
                    email TEXT,
                    phone TEXT,
                    location TEXT,
                    linkedin_url TEXT,
                    github_url TEXT,
                    website_url TEXT,
                    professional_summary TEXT
                );
                CREATE TABLE IF NOT EXISTS work_experience (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    company TEXT,
                    position TEXT,
                    location TEXT,
                    start_date TEXT,
                    end_date TEXT,
                    description TEXT
                );
                CREATE TABLE IF NOT EXISTS education (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    institution TEXT,
                    degree TEXT,
                    field_of_study TEXT,
                    location TEXT,
                    start_date TEXT,
                    end_date TEXT,
                    gpa TEXT,
                    highlights TEXT
                );
                CREATE TABLE IF NOT EXISTS user_projects (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    bullets TEXT NOT NULL DEFAULT '[]',
                    skills TEXT NOT NULL DEFAULT '[]',
                    start_date TEXT,
                    end_date TEXT,
                    url TEXT,
                    is_featured INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS skills (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT
                );
                CREATE TABLE IF NOT EXISTS api_tokens (
                    token_hash TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
            """)

    # --- reads ---

    def get_contact(self, user_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        return dict(row) if row is not None else None

    def list_experience(self, user_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM work_experience WHERE user_id = ? ORDER BY start_date DESC",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def list_education(self, user_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM education WHERE user_id = ? ORDER BY end_date DESC",
                (user_id,),
            ).fetchall()
        result = []
        for r in rows:
            row = dict(r)
            row["highlights"] = _load_json_column(row.get("highlights"))
            result.append(row)
        return result

    def list_projects(self, user_id: str) -> list[StoredProject]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM user_projects WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_project(r) for r in rows]

    def list_skills(self, user_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, category FROM skills WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    # --- writes ---

    def upsert_contact(self, user_id: str, **fields: Any) -> None:
        columns = [
            "full_name", "email", "phone", "location", "linkedin_url",
            "github_url", "website_url", "professional_summary",
        ]
        unknown = set(fields) - set(columns)
        if unknown:
            raise ValueError(f"Unknown contact fields: {sorted(unknown)}")
        with self._connect() as conn:
            conn.execute(
                f"""INSERT OR REPLACE INTO user_profiles (user_id, {", ".join(columns)})
                    VALUES (?, {", ".join("?" for _ in columns)})""",
                (user_id, *(fields.get(c) for c in columns)),
            )

    def add_experience(self, user_id: str, **fields: Any) -> str:
        entry_id = fields.pop("id", None) or str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO work_experience
                   (id, user_id, company, position, location, start_date, end_date, description)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry_id,
                    user_id,
                    fields.get("company"),
                    fields.get("position"),
                    fields.get("location"),
                    fields.get("start_date"),
                    fields.get("end_date"),
                    fields.get("description"),
                ),
            )
        return entry_id

    def add_education(self, user_id: str, **fields: Any) -> str:
        entry_id = fields.pop("id", None) or str(uuid.uuid4())
        highlights = fields.get("highlights")
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO education
                   (id, user_id, institution, degree, field_of_study, location,
                    start_date, end_date, gpa, highlights)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry_id,
                    user_id,
                    fields.get("institution"),
                    fields.get("degree"),
                    fields.get("field_of_study"),
                    fields.get("location"),
                    fields.get("start_date"),
                    fields.get("end_date"),
                    fields.get("gpa"),
                    json.dumps(highlights) if highlights is not None else None,
                ),
            )
        return entry_id

    def add_skill(self, user_id: str, name: str, category: str | None = None) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO skills (user_id, name, category) VALUES (?, ?, ?)",
                (user_id, name, category),
            )

    def import_profile(self, user_id: str, data: dict[str, Any]) -> dict[str, int]:
        """Seed a profile from a loaded YAML/JSON document.

        ``skills`` may be a list of names/``{name, category}`` items or a
        mapping of category to names. Returns per-section insert counts.
        """
        counts = {"experience": 0, "education": 0, "projects": 0, "skills": 0}
        contact = dict(data.get("contact") or {})
        if data.get("professional_summary") is not None:
            contact["professional_summary"] = data["professional_summary"]
        if contact:
            self.upsert_contact(user_id, **contact)

        for item in data.get("experience") or []:
            self.add_experience(user_id, **item)
            counts["experience"] += 1
        for item in data.get("education") or []:
            self.add_education(user_id, **item)
            counts["education"] += 1
        for item in data.get("projects") or []:
            self.insert_project(user_id, item)
            counts["projects"] += 1

        skills = data.get("skills") or []
        if isinstance(skills, dict):
            skills = [
                {"name": name, "category": category}
                for category, names in skills.items()
                for name in names or []
            ]
        for item in skills:
            if isinstance(item, str):
                self.add_skill(user_id, item)
            else:
                self.add_skill(user_id, item["name"], item.get("category"))
            counts["skills"] += 1
        return counts

    def insert_project(self, user_id: str, fields: dict[str, Any]) -> StoredProject:
        now = _now()
        project = StoredProject(
            id=fields.get("id") or str(uuid.uuid4()),
            user_id=user_id,
            name=fields["name"],
            description=fields.get("description"),
            bullets=list(fields.get("bullets") or []),
            skills=list(fields.get("skills") or []),
            start_date=fields.get("start_date"),
            end_date=fields.get("end_date"),
            url=fields.get("url"),
            is_featured=bool(fields.get("is_featured", False)),
        )
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO user_projects
                   (id, user_id, name, description, bullets, skills, start_date,
                    end_date, url, is_featured, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    project.id,
                    user_id,
                    project.name,
                    project.description,
                    json.dumps(project.bullets),
                    json.dumps(project.skills),
                    project.start_date,
                    project.end_date,
                    project.url,
                    1 if project.is_featured else 0,
                    now,
                    now,
                ),
            )
        return project

    def update_project(self, user_id: str, project_id: str, fields: dict[str, Any]) -> bool:
        updates = {k: v for k, v in fields.items() if k in _PROJECT_PATCH_COLUMNS}
        if not updates:
            return False
        params = [
            json.dumps(v) if k in ("bullets", "skills") else v for k, v in updates.items()
        ]
        assignments = ", ".join(f"{k} = ?" for k in updates)
        with self._connect() as conn:
            cursor = conn.execute(
                f"""UPDATE user_projects SET {assignments}, updated_at = ?
                    WHERE id = ? AND user_id = ?""",
                (*params, _now(), project_id, user_id),
            )
            return cursor.rowcount > 0

    # --- tokens ---

    def issue_token(self, user_id: str) -> str:
        """Create a bearer token for ``user_id``. Only its hash is stored."""
        token = secrets.token_urlsafe(32)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO api_tokens (token_hash, user_id, created_at) VALUES (?, ?, ?)",
                (hash_token(token), user_id, _now()),
            )
        return token

    def user_for_token(self, token: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT user_id FROM api_tokens WHERE token_hash = ?", (hash_token(token),)
            ).fetchone()
        return row["user_id"] if row is not None else None

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> StoredProject:
        return StoredProject(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            bullets=_load_json_column(row["bullets"]) or [],
            skills=_load_json_column(row["skills"]) or [],
            start_date=row["start_date"],
            end_date=row["end_date"],
            url=row["url"],
            is_featured=bool(row["is_featured"]),
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_json_column(value: str | None) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        # Plain text stored by hand
        return value
