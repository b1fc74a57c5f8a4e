from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable

from page_analyzer.errors import URLS_003_NOT_FOUND, URLS_004_UNREACHABLE
from page_analyzer.models import Check, CheckOutcome, CheckStatus, utc_now
from page_analyzer.services.fetcher import FetchFailure, Fetcher
from page_analyzer.services.page_inspector import inspect
from page_analyzer.services.page_store import PageStore


logger = logging.getLogger(__name__)


class CheckPipeline:
    """Fetch one registered address, inspect the page and append a check.

    Failure policy:
    - unknown address: ``address_not_found``, nothing fetched
    - transport failure: ``check_failed``, nothing written
    - any HTTP status, including 4xx/5xx: inspected and recorded
    - ``StoreError`` while saving propagates to the caller
    """

    def __init__(
        self,
        store: PageStore,
        fetcher: Fetcher,
        *,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self._clock = clock

    def run_check(self, address_id: int) -> CheckOutcome:
        address = self.store.addresses.find(address_id)
        if address is None:
            return CheckOutcome(
                status=CheckStatus.ADDRESS_NOT_FOUND,
                address_id=address_id,
                error=URLS_003_NOT_FOUND,
                message=URLS_003_NOT_FOUND.message,
            )

        result = self.fetcher.fetch(address.name)
        if isinstance(result, FetchFailure):
            logger.warning("check of %s not recorded: %s", address.name, result.error_type)
            return CheckOutcome(
                status=CheckStatus.CHECK_FAILED,
                address_id=address.id,
                error=URLS_004_UNREACHABLE,
                error_type=result.error_type,
                message=result.message,
            )

        signals = inspect(result.body)
        check = self.store.checks.save(
            Check(
                address_id=address.id,
                status_code=result.status_code,
                title=signals.title,
                h1=signals.h1,
                description=signals.description,
                created_at=self._clock(),
            )
        )
        logger.info("check %s recorded for %s (HTTP %s)", check.id, address.name, check.status_code)
        return CheckOutcome(status=CheckStatus.RECORDED, address_id=address.id, check=check)
