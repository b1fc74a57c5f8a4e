from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from page_analyzer.config import AppSettings, get_app_settings, setup_logging
from page_analyzer.db.config import redact_database_url
from page_analyzer.errors import URLS_003_NOT_FOUND, ErrorCode, StoreError
from page_analyzer.models import CheckStatus, RegisterStatus, address_to_dict, check_to_dict
from page_analyzer.services.check_pipeline import CheckPipeline
from page_analyzer.services.fetcher import Fetcher
from page_analyzer.services.page_store import PageStore
from page_analyzer.services.url_service import UrlService


logger = logging.getLogger(__name__)


class UrlIn(BaseModel):
    url: str = ""


def _error(status_code: int, err: ErrorCode, **extra: Any) -> JSONResponse:
    payload = {"ok": False, "error": {"code": err.code, "message": err.message, **extra}}
    return JSONResponse(status_code=status_code, content=payload)


def create_app(
    store: PageStore | None = None,
    fetcher: Fetcher | None = None,
    settings: AppSettings | None = None,
) -> FastAPI:
    settings = settings or get_app_settings()
    store = store or PageStore()
    fetcher = fetcher or Fetcher(
        timeout=settings.fetch_timeout_seconds,
        user_agent=settings.user_agent,
        max_body_bytes=settings.max_body_bytes,
    )
    urls = UrlService(store)
    pipeline = CheckPipeline(store, fetcher)
    app = FastAPI(title="Page Analyzer API", version="1.0.0")

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        # No store round-trip: used by container healthchecks.
        return {
            "ok": True,
            "service": "page-analyzer",
            "db_url": redact_database_url(store.database_url),
            "db_backend": store.engine.dialect.name,
            "ts": datetime.now(timezone.utc).isoformat(),
        }

    @app.exception_handler(StoreError)
    async def _store_error_handler(_: Request, exc: StoreError) -> JSONResponse:
        logger.error("request failed on storage: %s", exc)
        return _error(500, exc.err)

    @app.post("/urls")
    def create_url(body: UrlIn) -> JSONResponse:
        outcome = urls.register(body.url)
        if outcome.status is RegisterStatus.REJECTED:
            return _error(422, outcome.error, reason=outcome.reason)
        if outcome.status is RegisterStatus.DUPLICATE:
            existing = address_to_dict(outcome.address) if outcome.address is not None else None
            return _error(409, outcome.error, url=existing)
        return JSONResponse(status_code=201, content={"ok": True, "url": address_to_dict(outcome.address)})

    @app.get("/urls")
    def list_urls(term: str | None = None) -> dict[str, Any]:
        rows = []
        for listing in urls.list_addresses(term):
            row = address_to_dict(listing.address)
            row["last_check"] = check_to_dict(listing.latest_check) if listing.latest_check else None
            rows.append(row)
        return {"ok": True, "term": term or "", "urls": rows}

    @app.get("/urls/{address_id}")
    def show_url(address_id: int) -> Any:
        detail = urls.show_address(address_id)
        if detail is None:
            return _error(404, URLS_003_NOT_FOUND)
        return {
            "ok": True,
            "url": address_to_dict(detail.address),
            "checks": [check_to_dict(c) for c in detail.checks],
        }

    @app.post("/urls/{address_id}/checks")
    def create_check(address_id: int) -> JSONResponse:
        outcome = pipeline.run_check(address_id)
        if outcome.status is CheckStatus.ADDRESS_NOT_FOUND:
            return _error(404, outcome.error)
        if outcome.status is CheckStatus.CHECK_FAILED:
            return _error(502, outcome.error, error_type=outcome.error_type, detail=outcome.message)
        return JSONResponse(status_code=201, content={"ok": True, "check": check_to_dict(outcome.check)})

    return app


def run_server() -> None:
    settings = get_app_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "page_analyzer.web.urls_api:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
