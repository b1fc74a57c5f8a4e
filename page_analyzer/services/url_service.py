from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable

from page_analyzer.errors import URLS_001_INVALID_URL, URLS_002_DUPLICATE, DuplicateAddressError
from page_analyzer.models import (
    AddressDetail,
    AddressListing,
    RegisterOutcome,
    RegisterStatus,
    utc_now,
)
from page_analyzer.services.page_store import PageStore
from page_analyzer.utils.url_norm import normalize


logger = logging.getLogger(__name__)


class UrlService:
    def __init__(self, store: PageStore, *, clock: Callable[[], dt.datetime] = utc_now) -> None:
        self.store = store
        self._clock = clock

    def register(self, raw: str | None) -> RegisterOutcome:
        norm = normalize(raw)
        if not norm.ok:
            reason = norm.reason.value if norm.reason is not None else ""
            return RegisterOutcome(status=RegisterStatus.REJECTED, reason=reason, error=URLS_001_INVALID_URL)

        key = str(norm.key)
        existing = self.store.addresses.find_by_name(key)
        if existing is not None:
            return RegisterOutcome(status=RegisterStatus.DUPLICATE, address=existing, error=URLS_002_DUPLICATE)

        try:
            address = self.store.addresses.save(key, created_at=self._clock())
        except DuplicateAddressError:
            # Lost the race against a concurrent registration of the same key.
            return RegisterOutcome(
                status=RegisterStatus.DUPLICATE,
                address=self.store.addresses.find_by_name(key),
                error=URLS_002_DUPLICATE,
            )
        logger.info("registered %s as address %s", address.name, address.id)
        return RegisterOutcome(status=RegisterStatus.CREATED, address=address)

    def list_addresses(self, term: str | None = None) -> list[AddressListing]:
        addresses = self.store.addresses.all(term)
        latest = self.store.checks.latest_for_many(a.id for a in addresses)
        return [AddressListing(address=a, latest_check=latest.get(a.id)) for a in addresses]

    def show_address(self, address_id: int) -> AddressDetail | None:
        address = self.store.addresses.find(address_id)
        if address is None:
            return None
        return AddressDetail(address=address, checks=self.store.checks.find_by_address(address.id))
