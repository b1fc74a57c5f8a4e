from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag

from page_analyzer.models import PageSignals


logger = logging.getLogger(__name__)


def _clean_text(raw: str) -> str:
    return " ".join(str(raw or "").split())


def _is_description_meta(tag: Any) -> bool:
    return (
        isinstance(tag, Tag)
        and tag.name == "meta"
        and str(tag.get("name", "")).strip().lower() == "description"
    )


def _first_text(soup: BeautifulSoup, name: str) -> str | None:
    el = soup.find(name)
    if el is None:
        return None
    return _clean_text(el.get_text())


def inspect(body: bytes | str | None) -> PageSignals:
    """Pull title, first h1 and meta description out of an HTML body.

    Each field is independent: ``None`` when the element is missing, ``""``
    when it is there but empty. Broken markup never raises; whatever the
    parser could recover is used.
    """
    if not body:
        return PageSignals()
    try:
        soup = BeautifulSoup(body, "html.parser")
    except Exception as e:
        logger.debug("unparsable body, no signals extracted: %s", e)
        return PageSignals()

    description: str | None = None
    meta = soup.find(_is_description_meta)
    if meta is not None:
        content = meta.get("content")
        if isinstance(content, list):
            content = " ".join(content)
        description = _clean_text(content or "")

    return PageSignals(
        title=_first_text(soup, "title"),
        h1=_first_text(soup, "h1"),
        description=description,
    )
