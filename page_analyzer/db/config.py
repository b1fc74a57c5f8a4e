from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import make_url


DEFAULT_SQLITE_PATH = Path("data") / "page_analyzer.db"
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"


@dataclass(frozen=True)
class DBSettings:
    database_url: str


def get_db_settings() -> DBSettings:
    database_url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL).strip() or DEFAULT_DATABASE_URL
    return DBSettings(database_url=database_url)


def sqlite_path_from_url(url: str, project_root: Path) -> Path | None:
    raw = (url or "").strip()
    if not raw.lower().startswith("sqlite"):
        return None
    database = make_url(raw).database or ""
    if not database or database == ":memory:":
        return None
    p = Path(database)
    return p if p.is_absolute() else project_root / p


def redact_database_url(url: str) -> str:
    raw = (url or "").strip()
    if not raw:
        return ""
    try:
        return make_url(raw).render_as_string(hide_password=True)
    except Exception:
        return raw
