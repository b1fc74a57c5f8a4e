from __future__ import annotations

import datetime as dt
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from page_analyzer.errors import URLS_003_NOT_FOUND, URLS_004_UNREACHABLE, StoreError
from page_analyzer.models import CheckStatus
from page_analyzer.services.check_pipeline import CheckPipeline
from page_analyzer.services.fetcher import FetchFailure, FetchSuccess
from page_analyzer.services.page_store import PageStore


T0 = dt.datetime(2026, 10, 19, 8, 30, tzinfo=dt.timezone.utc)

FULL_PAGE = (
    b"<html><head><title>Example Domain</title>"
    b'<meta name="description" content="Example description"></head>'
    b"<body><h1>Welcome</h1></body></html>"
)
NO_H1_PAGE = b"<html><head><title>No heading</title></head><body><p>text</p></body></html>"


class _FakeFetcher:
    def __init__(self, *results) -> None:
        self._results = list(results)
        self.calls: list[str] = []

    def fetch(self, canonical_key: str, timeout: float | None = None):
        self.calls.append(canonical_key)
        return self._results.pop(0)


class _Clock:
    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> dt.datetime:
        self.ticks += 1
        return T0 + dt.timedelta(seconds=self.ticks)


class CheckPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        root = Path(self._td.name)
        self.store = PageStore(f"sqlite:///{(root / 'pa.db').as_posix()}", project_root=root)
        self.address = self.store.addresses.save("https://example.com", created_at=T0)
        self.clock = _Clock()

    def tearDown(self) -> None:
        self.store.dispose()
        self._td.cleanup()

    def _pipeline(self, *results) -> tuple[CheckPipeline, _FakeFetcher]:
        fetcher = _FakeFetcher(*results)
        return CheckPipeline(self.store, fetcher, clock=self.clock), fetcher  # type: ignore[arg-type]

    def test_successful_check_records_all_signals(self) -> None:
        pipeline, fetcher = self._pipeline(FetchSuccess(status_code=200, body=FULL_PAGE))
        outcome = pipeline.run_check(self.address.id)
        self.assertEqual(outcome.status, CheckStatus.RECORDED)
        self.assertTrue(outcome.ok)
        self.assertEqual(fetcher.calls, ["https://example.com"])
        check = outcome.check
        self.assertIsNotNone(check.id)
        self.assertEqual(check.status_code, 200)
        self.assertEqual(check.title, "Example Domain")
        self.assertEqual(check.h1, "Welcome")
        self.assertEqual(check.description, "Example description")
        self.assertEqual(check.created_at, T0 + dt.timedelta(seconds=1))
        self.assertEqual(self.store.checks.find_by_address(self.address.id), [check])

    def test_missing_h1_is_recorded_as_absent(self) -> None:
        pipeline, _ = self._pipeline(FetchSuccess(status_code=200, body=NO_H1_PAGE))
        check = pipeline.run_check(self.address.id).check
        self.assertIsNone(check.h1)
        self.assertEqual(check.title, "No heading")
        self.assertIsNone(check.description)

    def test_error_status_pages_are_inspected_and_recorded(self) -> None:
        body = b"<title>Not Found</title><h1>404</h1>"
        pipeline, _ = self._pipeline(
            FetchSuccess(status_code=404, body=body),
            FetchSuccess(status_code=500, body=b""),
        )
        first = pipeline.run_check(self.address.id)
        second = pipeline.run_check(self.address.id)
        self.assertEqual(first.check.status_code, 404)
        self.assertEqual(first.check.title, "Not Found")
        self.assertEqual(first.check.h1, "404")
        self.assertEqual(second.check.status_code, 500)
        self.assertIsNone(second.check.title)
        self.assertEqual(self.store.checks.count(self.address.id), 2)

    def test_transport_failure_records_nothing(self) -> None:
        pipeline, _ = self._pipeline(FetchSuccess(status_code=200, body=FULL_PAGE))
        pipeline.run_check(self.address.id)
        before = self.store.checks.find_by_address(self.address.id)

        pipeline, fetcher = self._pipeline(
            FetchFailure(error_type="connection_refused", message="URLError: [Errno 111] Connection refused")
        )
        outcome = pipeline.run_check(self.address.id)
        self.assertEqual(outcome.status, CheckStatus.CHECK_FAILED)
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error, URLS_004_UNREACHABLE)
        self.assertEqual(outcome.error_type, "connection_refused")
        self.assertIn("Connection refused", outcome.message)
        self.assertIsNone(outcome.check)
        self.assertEqual(len(fetcher.calls), 1)
        self.assertEqual(self.store.checks.find_by_address(self.address.id), before)

    def test_unknown_address_is_not_fetched(self) -> None:
        pipeline, fetcher = self._pipeline()
        outcome = pipeline.run_check(9999)
        self.assertEqual(outcome.status, CheckStatus.ADDRESS_NOT_FOUND)
        self.assertEqual(outcome.error, URLS_003_NOT_FOUND)
        self.assertEqual(outcome.address_id, 9999)
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(self.store.checks.count(), 0)

    def test_id_beyond_integer_range_is_not_found(self) -> None:
        pipeline, fetcher = self._pipeline()
        outcome = pipeline.run_check(2**70)
        self.assertEqual(outcome.status, CheckStatus.ADDRESS_NOT_FOUND)
        self.assertEqual(outcome.error, URLS_003_NOT_FOUND)
        self.assertEqual(fetcher.calls, [])

    def test_three_checks_history_and_latest(self) -> None:
        pages = [
            FetchSuccess(status_code=200, body=b"<title>one</title>"),
            FetchSuccess(status_code=200, body=b"<title>two</title>"),
            FetchSuccess(status_code=200, body=b"<title>three</title>"),
        ]
        pipeline, _ = self._pipeline(*pages)
        recorded = [pipeline.run_check(self.address.id).check for _ in range(3)]
        history = self.store.checks.find_by_address(self.address.id)
        self.assertEqual([c.title for c in history], ["three", "two", "one"])
        self.assertEqual(self.store.checks.latest_for(self.address.id), recorded[2])

    def test_same_instant_checks_keep_insert_order(self) -> None:
        pipeline, _ = self._pipeline(
            FetchSuccess(status_code=200, body=b"<title>first</title>"),
            FetchSuccess(status_code=201, body=b"<title>second</title>"),
        )
        pipeline._clock = lambda: T0
        pipeline.run_check(self.address.id)
        pipeline.run_check(self.address.id)
        self.assertEqual(self.store.checks.latest_for(self.address.id).title, "second")

    def test_store_failure_propagates(self) -> None:
        pipeline, _ = self._pipeline(FetchSuccess(status_code=200, body=FULL_PAGE))
        with patch.object(self.store.checks, "save", side_effect=StoreError("checks.save: OperationalError")):
            with self.assertRaises(StoreError):
                pipeline.run_check(self.address.id)


if __name__ == "__main__":
    unittest.main()
