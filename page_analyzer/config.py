from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_BODY_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 7070

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class AppSettings:
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    user_agent: str | None = None
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    log_level: str = DEFAULT_LOG_LEVEL
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT


def _positive_float(v: Any, default: float) -> float:
    try:
        f = float(str(v).strip())
    except (TypeError, ValueError):
        return default
    return f if f > 0 else default


def _positive_int(v: Any, default: int) -> int:
    try:
        n = int(str(v).strip())
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _normalize_log_level(v: Any) -> str:
    vv = str(v or DEFAULT_LOG_LEVEL).strip().upper()
    return vv if vv in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else DEFAULT_LOG_LEVEL


def _load_yaml_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    return doc if isinstance(doc, dict) else {}


def get_app_settings(config_path: str | Path | None = None) -> AppSettings:
    """Resolve settings: environment first, then the YAML file, then defaults.

    The YAML file is taken from ``config_path`` or ``PAGE_ANALYZER_CONFIG``;
    a missing file is not an error. Keys mirror the ``AppSettings`` fields,
    with fetch options optionally nested under ``fetch:``.
    """
    raw_path = config_path or os.environ.get("PAGE_ANALYZER_CONFIG", "").strip()
    doc = _load_yaml_config(Path(raw_path)) if raw_path else {}
    fetch = doc.get("fetch", {}) if isinstance(doc.get("fetch"), dict) else {}

    def pick(env_key: str, *doc_values: Any) -> Any:
        env_v = os.environ.get(env_key, "").strip()
        if env_v:
            return env_v
        for v in doc_values:
            if v is not None and str(v).strip() != "":
                return v
        return None

    user_agent = pick("FETCH_USER_AGENT", fetch.get("user_agent"), doc.get("user_agent"))
    return AppSettings(
        fetch_timeout_seconds=_positive_float(
            pick("FETCH_TIMEOUT_SECONDS", fetch.get("timeout_seconds"), doc.get("fetch_timeout_seconds")),
            DEFAULT_FETCH_TIMEOUT_SECONDS,
        ),
        user_agent=str(user_agent).strip() if user_agent else None,
        max_body_bytes=_positive_int(
            pick("FETCH_MAX_BODY_BYTES", fetch.get("max_body_bytes"), doc.get("max_body_bytes")),
            DEFAULT_MAX_BODY_BYTES,
        ),
        log_level=_normalize_log_level(pick("LOG_LEVEL", doc.get("log_level"))),
        api_host=str(pick("PAGE_ANALYZER_HOST", doc.get("api_host")) or DEFAULT_API_HOST),
        api_port=_positive_int(pick("PAGE_ANALYZER_PORT", doc.get("api_port")), DEFAULT_API_PORT),
    )


def setup_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(
        level=_normalize_log_level(level),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
