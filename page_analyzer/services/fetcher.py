from __future__ import annotations

import logging
import socket
import ssl
import time
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, Union
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from page_analyzer.config import DEFAULT_FETCH_TIMEOUT_SECONDS, DEFAULT_MAX_BODY_BYTES


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchSuccess:
    status_code: int
    body: bytes
    content_type: str = ""
    url: str = ""
    duration_ms: int = 0


@dataclass(frozen=True)
class FetchFailure:
    error_type: str
    message: str
    duration_ms: int = 0


FetchResult = Union[FetchSuccess, FetchFailure]


def _classify_reason(reason: Any) -> str:
    if isinstance(reason, socket.gaierror):
        return "dns_error"
    if isinstance(reason, TimeoutError):
        return "timeout"
    if isinstance(reason, ConnectionRefusedError):
        return "connection_refused"
    if isinstance(reason, ssl.SSLError):
        return "ssl_error"
    msg = str(reason or "").lower()
    if "unknown url type" in msg:
        return "unsupported_protocol"
    if "name or service not known" in msg or "nodename nor servname provided" in msg:
        return "dns_error"
    if "timed out" in msg:
        return "timeout"
    if "refused" in msg:
        return "connection_refused"
    return "network_error"


def _content_type(resp: Any) -> str:
    headers = getattr(resp, "headers", None)
    if not headers:
        return ""
    return str(headers.get("Content-Type", "") or "")


class Fetcher:
    """Issues exactly one GET per call. Never retries.

    HTTP error statuses are returned as ``FetchSuccess`` with the error page
    body. Only transport problems become ``FetchFailure``.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        user_agent: str | None = None,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self.timeout = float(timeout)
        self.user_agent = user_agent
        self.max_body_bytes = int(max_body_bytes)

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent} if self.user_agent else {}

    def fetch(self, canonical_key: str, timeout: float | None = None) -> FetchResult:
        url = str(canonical_key or "").strip()
        t = float(timeout) if timeout is not None else self.timeout
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            req = Request(url, headers=self._headers(), method="GET")
            with urlopen(req, timeout=t) as r:
                body = r.read(self.max_body_bytes)
                status = int(getattr(r, "status", 200) or 200)
                final_url = str(r.geturl()) if hasattr(r, "geturl") else url
                return FetchSuccess(
                    status_code=status,
                    body=body,
                    content_type=_content_type(r),
                    url=final_url,
                    duration_ms=elapsed(),
                )
        except HTTPError as e:
            try:
                body = e.read(self.max_body_bytes) or b""
            except (OSError, HTTPException):
                body = b""
            logger.info("GET %s answered HTTP %s", url, e.code)
            return FetchSuccess(
                status_code=int(e.code),
                body=body,
                content_type=_content_type(e),
                url=url,
                duration_ms=elapsed(),
            )
        except URLError as e:
            reason = getattr(e, "reason", e)
            return self._failure(url, _classify_reason(reason), f"URLError: {reason}", elapsed())
        except HTTPException as e:
            return self._failure(url, "malformed_response", f"{type(e).__name__}: {e}", elapsed())
        except TimeoutError as e:
            return self._failure(url, "timeout", f"TimeoutError: {e}", elapsed())
        except OSError as e:
            return self._failure(url, _classify_reason(e), f"{type(e).__name__}: {e}", elapsed())
        except ValueError as e:
            return self._failure(url, "unsupported_protocol", f"ValueError: {e}", elapsed())

    @staticmethod
    def _failure(url: str, error_type: str, message: str, duration_ms: int) -> FetchFailure:
        logger.warning("GET %s failed (%s): %s", url, error_type, message)
        return FetchFailure(error_type=error_type, message=message, duration_ms=duration_ms)
