from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
from sqlalchemy import Engine, inspect

from page_analyzer.db.config import get_db_settings, redact_database_url, sqlite_path_from_url
from page_analyzer.db.engine import make_engine
from page_analyzer.db.repo.addresses_repo import AddressesRepo
from page_analyzer.db.repo.checks_repo import ChecksRepo
from page_analyzer.db.session import make_session_factory


REQUIRED_TABLES = ("addresses", "checks")


class PageStore:
    """
    Explicit handle on the relational store. Built once at startup and passed
    to every component that persists anything; nothing reaches for a global
    data source.
    """

    def __init__(
        self,
        database_url: str | None = None,
        *,
        project_root: Path | None = None,
        auto_init: bool = True,
    ) -> None:
        self.project_root = project_root or Path.cwd()
        self.database_url = (database_url or get_db_settings().database_url).strip()
        self.db_path = sqlite_path_from_url(self.database_url, self.project_root)
        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = make_engine(self.database_url)
        self._Session = make_session_factory(self.engine)
        self.addresses = AddressesRepo(self._Session)
        self.checks = ChecksRepo(self._Session)
        self._logger = logging.getLogger("page_store")
        if auto_init:
            self.ensure_schema()

    def _alembic_paths(self) -> tuple[Path, Path]:
        alembic_ini = self.project_root / "alembic.ini"
        script_location = self.project_root / "alembic"
        if not alembic_ini.exists() or not script_location.exists():
            fallback_root = Path(__file__).resolve().parents[2]
            alembic_ini = fallback_root / "alembic.ini"
            script_location = fallback_root / "alembic"
        if not alembic_ini.exists() or not script_location.exists():
            raise RuntimeError("Alembic configuration not found")
        return alembic_ini, script_location

    def run_migrations(self) -> None:
        alembic_ini, script_location = self._alembic_paths()
        cfg = Config(str(alembic_ini))
        cfg.set_main_option("script_location", str(script_location))
        cfg.set_main_option("sqlalchemy.url", self.database_url.replace("%", "%%"))
        cfg.attributes["configure_logger"] = False
        prev = os.environ.get("DATABASE_URL")
        try:
            os.environ["DATABASE_URL"] = self.database_url
            command.upgrade(cfg, "head")
        finally:
            if prev is None:
                os.environ.pop("DATABASE_URL", None)
            else:
                os.environ["DATABASE_URL"] = prev
        self._logger.info("schema upgraded to head (url=%s)", redact_database_url(self.database_url))

    def missing_tables(self) -> list[str]:
        insp = inspect(self.engine)
        return [name for name in REQUIRED_TABLES if not insp.has_table(name)]

    def ensure_schema(self) -> None:
        with self.engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        if not self.missing_tables():
            return
        try:
            self.run_migrations()
            still_missing = self.missing_tables()
            if still_missing:
                raise RuntimeError(f"missing tables after migration: {still_missing}")
        except Exception as e:
            raise RuntimeError(
                "Database schema is not ready; run `alembic upgrade head` "
                f"(url={redact_database_url(self.database_url)}): {e}"
            ) from e

    def clear(self) -> int:
        """Bulk reset: drop every address and, with it, every check."""
        removed = self.addresses.delete_all()
        self._logger.warning("cleared %d addresses", removed)
        return removed

    def status(self) -> dict[str, Any]:
        return {
            "db_url": redact_database_url(self.database_url),
            "db_backend": self.engine.dialect.name,
            "db_path": str(self.db_path or ""),
            "addresses": self.addresses.count(),
            "checks": self.checks.count(),
        }

    def dispose(self) -> None:
        self.engine.dispose()
