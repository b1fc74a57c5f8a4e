from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


DEFAULT_PORTS = {"http": 80, "https": 443}
SUPPORTED_SCHEMES = frozenset(DEFAULT_PORTS)

_HOST_RE = re.compile(r"^[\w.\-~%]+$")
_BARE_PORT_RE = re.compile(r"^\d+(?:/|$)")
_WWW_PREFIX = "www."


class RejectReason(str, Enum):
    EMPTY = "empty"
    MALFORMED = "malformed"
    NOT_ABSOLUTE = "not_absolute"
    UNSUPPORTED_SCHEME = "unsupported_scheme"


@dataclass(frozen=True)
class NormalizeResult:
    key: Optional[str] = None
    reason: Optional[RejectReason] = None

    @property
    def ok(self) -> bool:
        return self.key is not None


def _reject(reason: RejectReason) -> NormalizeResult:
    return NormalizeResult(key=None, reason=reason)


def _normalize_host(hostname: str) -> str | None:
    host = hostname.lower()
    if ":" in host:
        # IPv6 literal; urlsplit already validated the brackets.
        return f"[{host}]"
    if host.startswith(_WWW_PREFIX):
        host = host[len(_WWW_PREFIX):]
    if not host or not _HOST_RE.match(host):
        return None
    return host


def normalize(raw: str | None) -> NormalizeResult:
    """Reduce a user-supplied address to its canonical ``scheme://host[:port]`` key.

    Path, query and fragment are discarded, ``www.`` is stripped once from the
    host and default ports are omitted. Never touches the network and never
    raises for bad input.
    """
    text = str(raw or "").strip()
    if not text:
        return _reject(RejectReason.EMPTY)

    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError:
        return _reject(RejectReason.MALFORMED)

    scheme = (parts.scheme or "").lower()
    if not scheme:
        return _reject(RejectReason.NOT_ABSOLUTE)
    if not parts.netloc and _BARE_PORT_RE.match(parts.path):
        # "example.com:8080" splits as scheme "example.com", path "8080".
        return _reject(RejectReason.NOT_ABSOLUTE)
    if scheme not in SUPPORTED_SCHEMES:
        return _reject(RejectReason.UNSUPPORTED_SCHEME)

    host = _normalize_host(parts.hostname or "")
    if host is None:
        return _reject(RejectReason.MALFORMED)

    key = f"{scheme}://{host}"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        key = f"{key}:{port}"
    return NormalizeResult(key=key, reason=None)
