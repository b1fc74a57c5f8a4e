from __future__ import annotations

import json
import sys
from typing import Any

from page_analyzer.config import get_app_settings, setup_logging
from page_analyzer.errors import URLS_003_NOT_FOUND, PageAnalyzerError
from page_analyzer.models import CheckStatus, RegisterStatus, address_to_dict, check_to_dict
from page_analyzer.services.check_pipeline import CheckPipeline
from page_analyzer.services.fetcher import Fetcher
from page_analyzer.services.page_store import PageStore
from page_analyzer.services.url_service import UrlService


USAGE = (
    "Usage: python -m page_analyzer.workers.cli "
    "urls:add|urls:list|urls:show|urls:check|db:upgrade|db:status|db:clear [options]"
)


def _get_opt(argv: list[str], key: str) -> str | None:
    if key not in argv:
        return None
    idx = argv.index(key)
    if idx + 1 >= len(argv):
        return None
    return argv[idx + 1]


def _get_id(argv: list[str]) -> int | None:
    raw = _get_opt(argv, "--id")
    if raw is None and argv and not argv[0].startswith("--"):
        raw = argv[0]
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _open_store(*, auto_init: bool = True) -> PageStore:
    return PageStore(auto_init=auto_init)


def cmd_urls_add(argv: list[str]) -> int:
    raw = _get_opt(argv, "--url")
    if raw is None and argv and not argv[0].startswith("--"):
        raw = argv[0]
    outcome = UrlService(_open_store()).register(raw)
    if outcome.status is RegisterStatus.CREATED:
        _emit({"ok": True, "status": outcome.status.value, "url": address_to_dict(outcome.address)})
        return 0
    out: dict[str, Any] = {
        "ok": False,
        "status": outcome.status.value,
        "error_code": outcome.error.code if outcome.error else "",
        "error": outcome.error.message if outcome.error else "",
    }
    if outcome.reason:
        out["reason"] = outcome.reason
    if outcome.address is not None:
        out["url"] = address_to_dict(outcome.address)
    _emit(out)
    return 3


def cmd_urls_list(argv: list[str]) -> int:
    term = _get_opt(argv, "--term")
    rows = []
    for listing in UrlService(_open_store()).list_addresses(term):
        row = address_to_dict(listing.address)
        row["last_check"] = check_to_dict(listing.latest_check) if listing.latest_check else None
        rows.append(row)
    _emit({"ok": True, "term": term or "", "count": len(rows), "urls": rows})
    return 0


def cmd_urls_show(argv: list[str]) -> int:
    address_id = _get_id(argv)
    if address_id is None:
        print("urls:show requires --id <int>", file=sys.stderr)
        return 2
    detail = UrlService(_open_store()).show_address(address_id)
    if detail is None:
        _emit({"ok": False, "error_code": URLS_003_NOT_FOUND.code, "error": URLS_003_NOT_FOUND.message})
        return 4
    _emit(
        {
            "ok": True,
            "url": address_to_dict(detail.address),
            "checks": [check_to_dict(c) for c in detail.checks],
        }
    )
    return 0


def cmd_urls_check(argv: list[str]) -> int:
    address_id = _get_id(argv)
    if address_id is None:
        print("urls:check requires --id <int>", file=sys.stderr)
        return 2
    settings = get_app_settings()
    timeout = settings.fetch_timeout_seconds
    raw_timeout = _get_opt(argv, "--timeout-seconds")
    if raw_timeout is not None:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            timeout = 0.0
        if not timeout > 0:
            print("urls:check --timeout-seconds must be a positive number", file=sys.stderr)
            return 2
    fetcher = Fetcher(
        timeout=timeout,
        user_agent=settings.user_agent,
        max_body_bytes=settings.max_body_bytes,
    )
    outcome = CheckPipeline(_open_store(), fetcher).run_check(address_id)
    if outcome.status is CheckStatus.RECORDED:
        _emit({"ok": True, "status": outcome.status.value, "check": check_to_dict(outcome.check)})
        return 0
    _emit(
        {
            "ok": False,
            "status": outcome.status.value,
            "error_code": outcome.error.code if outcome.error else "",
            "error": outcome.error.message if outcome.error else "",
            "error_type": outcome.error_type,
            "detail": outcome.message,
        }
    )
    return 4 if outcome.status is CheckStatus.ADDRESS_NOT_FOUND else 5


def cmd_db_upgrade(argv: list[str]) -> int:
    store = _open_store(auto_init=False)
    store.run_migrations()
    _emit({"ok": True, **store.status()})
    return 0


def cmd_db_status(argv: list[str]) -> int:
    _emit({"ok": True, **_open_store().status()})
    return 0


def cmd_db_clear(argv: list[str]) -> int:
    if "--yes" not in argv:
        print("db:clear deletes every address and check; pass --yes to confirm", file=sys.stderr)
        return 2
    removed = _open_store().clear()
    _emit({"ok": True, "removed_addresses": removed})
    return 0


COMMANDS = {
    "urls:add": cmd_urls_add,
    "urls:list": cmd_urls_list,
    "urls:show": cmd_urls_show,
    "urls:check": cmd_urls_check,
    "db:upgrade": cmd_db_upgrade,
    "db:status": cmd_db_status,
    "db:clear": cmd_db_clear,
}


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        print(USAGE, file=sys.stderr)
        return 2

    setup_logging(get_app_settings().log_level)
    cmd = argv[0]
    tail = argv[1:]
    handler = COMMANDS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        return 2
    try:
        return handler(tail)
    except PageAnalyzerError as e:
        print(json.dumps({"ok": False, "error_code": e.err.code, "error": str(e)}, ensure_ascii=False))
        return 12
    except Exception as e:  # pragma: no cover
        print(
            json.dumps(
                {"ok": False, "error_code": "URLS_999_UNEXPECTED", "error": str(e)},
                ensure_ascii=False,
            )
        )
        return 12


if __name__ == "__main__":
    raise SystemExit(main())
