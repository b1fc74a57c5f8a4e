from __future__ import annotations

import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool

from page_analyzer.db import models  # noqa: F401  (registers addresses/checks on Base.metadata)
from page_analyzer.db.base import Base
from page_analyzer.db.config import get_db_settings

config = context.config

# In-process upgrades (PageStore) keep the host application's logging setup.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _database_url() -> str:
    # DATABASE_URL > sqlalchemy.url in alembic.ini > built-in sqlite default
    for candidate in (os.environ.get("DATABASE_URL"), config.get_main_option("sqlalchemy.url")):
        url = (candidate or "").strip()
        if url:
            return url
    return get_db_settings().database_url


def _context_options(is_sqlite: bool) -> dict[str, Any]:
    # SQLite cannot ALTER most constraints in place; batch mode recreates the table.
    return {"target_metadata": target_metadata, "compare_type": True, "render_as_batch": is_sqlite}


def run_migrations_offline() -> None:
    url = _database_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(url.lower().startswith("sqlite")),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = _database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, **_context_options(connection.dialect.name == "sqlite"))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
