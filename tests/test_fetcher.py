from __future__ import annotations

import io
import os
import socket
import ssl
import threading
import unittest
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from http.client import RemoteDisconnected
from unittest.mock import patch
from urllib.error import HTTPError, URLError

from page_analyzer.services.fetcher import Fetcher, FetchFailure, FetchSuccess


class _Resp:
    def __init__(self, body: bytes, status: int = 200, url: str = "https://example.com") -> None:
        self._body = body
        self.status = status
        self.headers = {"Content-Type": "text/html; charset=utf-8"}
        self._url = url
        self.read_limits: list[int | None] = []

    def read(self, n: int | None = None) -> bytes:
        self.read_limits.append(n)
        return self._body if n is None else self._body[:n]

    def geturl(self) -> str:
        return self._url

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _http_error(code: int, body: bytes) -> HTTPError:
    return HTTPError(
        "https://example.com",
        code,
        "error",
        {"Content-Type": "text/html"},  # type: ignore[arg-type]
        io.BytesIO(body),
    )


class FetcherTests(unittest.TestCase):
    @patch("page_analyzer.services.fetcher.urlopen")
    def test_success_returns_status_and_body(self, mock_urlopen) -> None:
        mock_urlopen.return_value = _Resp(b"<title>x</title>", status=200)
        out = Fetcher(timeout=3).fetch("https://example.com")
        self.assertIsInstance(out, FetchSuccess)
        self.assertEqual(out.status_code, 200)
        self.assertEqual(out.body, b"<title>x</title>")
        self.assertEqual(out.content_type, "text/html; charset=utf-8")
        mock_urlopen.assert_called_once()
        req = mock_urlopen.call_args.args[0]
        self.assertEqual(req.full_url, "https://example.com")
        self.assertEqual(req.get_method(), "GET")
        self.assertEqual(mock_urlopen.call_args.kwargs["timeout"], 3.0)

    @patch("page_analyzer.services.fetcher.urlopen")
    def test_timeout_override_per_call(self, mock_urlopen) -> None:
        mock_urlopen.return_value = _Resp(b"")
        Fetcher(timeout=3).fetch("https://example.com", timeout=0.5)
        self.assertEqual(mock_urlopen.call_args.kwargs["timeout"], 0.5)

    @patch("page_analyzer.services.fetcher.urlopen")
    def test_user_agent_only_when_configured(self, mock_urlopen) -> None:
        mock_urlopen.return_value = _Resp(b"")
        Fetcher().fetch("https://example.com")
        self.assertIsNone(mock_urlopen.call_args.args[0].get_header("User-agent"))

        Fetcher(user_agent="page-analyzer/1.0").fetch("https://example.com")
        self.assertEqual(mock_urlopen.call_args.args[0].get_header("User-agent"), "page-analyzer/1.0")

    @patch("page_analyzer.services.fetcher.urlopen")
    def test_body_is_capped(self, mock_urlopen) -> None:
        resp = _Resp(b"a" * 100)
        mock_urlopen.return_value = resp
        out = Fetcher(max_body_bytes=10).fetch("https://example.com")
        self.assertEqual(out.body, b"a" * 10)
        self.assertEqual(resp.read_limits, [10])

    @patch("page_analyzer.services.fetcher.urlopen")
    def test_http_error_status_is_a_success_with_body(self, mock_urlopen) -> None:
        mock_urlopen.side_effect = _http_error(404, b"<title>Not Found</title>")
        out = Fetcher().fetch("https://example.com")
        self.assertIsInstance(out, FetchSuccess)
        self.assertEqual(out.status_code, 404)
        self.assertEqual(out.body, b"<title>Not Found</title>")
        self.assertEqual(mock_urlopen.call_count, 1)

    @patch("page_analyzer.services.fetcher.urlopen")
    def test_server_error_is_not_retried(self, mock_urlopen) -> None:
        mock_urlopen.side_effect = _http_error(503, b"")
        out = Fetcher().fetch("https://example.com")
        self.assertEqual(out.status_code, 503)
        self.assertEqual(mock_urlopen.call_count, 1)

    @patch("page_analyzer.services.fetcher.urlopen")
    def test_transport_failures_are_classified(self, mock_urlopen) -> None:
        cases = [
            (URLError(socket.gaierror(-2, "Name or service not known")), "dns_error"),
            (URLError(ConnectionRefusedError(111, "Connection refused")), "connection_refused"),
            (URLError(TimeoutError("timed out")), "timeout"),
            (TimeoutError("The read operation timed out"), "timeout"),
            (URLError(ssl.SSLError(1, "certificate verify failed")), "ssl_error"),
            (URLError("unknown url type: gopher"), "unsupported_protocol"),
            (RemoteDisconnected("Remote end closed connection without response"), "malformed_response"),
            (ConnectionResetError(104, "Connection reset by peer"), "network_error"),
            (ValueError("unknown url type: ''"), "unsupported_protocol"),
        ]
        for exc, expected in cases:
            with self.subTest(expected=expected, exc=type(exc).__name__):
                mock_urlopen.reset_mock()
                mock_urlopen.side_effect = exc
                out = Fetcher().fetch("https://unreachable.invalid")
                self.assertIsInstance(out, FetchFailure)
                self.assertEqual(out.error_type, expected)
                self.assertTrue(out.message)
                self.assertEqual(mock_urlopen.call_count, 1)


class _PageHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        if self.path == "/moved":
            self.send_response(302)
            self.send_header("Location", "/")
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        status, body = (200, b"<title>Local page</title>") if self.path == "/" else (404, b"<title>Gone</title>")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        pass


def _closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


class LoopbackFetchTests(unittest.TestCase):
    def setUp(self) -> None:
        no_proxy = {k: v for k, v in os.environ.items() if not k.lower().endswith("_proxy")}
        self._env = patch.dict(os.environ, no_proxy, clear=True)
        self._env.start()
        self.server = ThreadingHTTPServer(("127.0.0.1", 0), _PageHandler)
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()
        self.base = f"http://127.0.0.1:{self.server.server_address[1]}"

    def tearDown(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self._thread.join(timeout=5)
        self._env.stop()

    def test_reads_page_from_local_server(self) -> None:
        out = Fetcher(timeout=5).fetch(self.base)
        self.assertIsInstance(out, FetchSuccess)
        self.assertEqual(out.status_code, 200)
        self.assertEqual(out.body, b"<title>Local page</title>")
        self.assertTrue(out.content_type.startswith("text/html"))

    def test_redirect_is_followed(self) -> None:
        out = Fetcher(timeout=5).fetch(f"{self.base}/moved")
        self.assertIsInstance(out, FetchSuccess)
        self.assertEqual(out.status_code, 200)
        self.assertEqual(out.url, f"{self.base}/")

    def test_missing_page_keeps_status_and_body(self) -> None:
        out = Fetcher(timeout=5).fetch(f"{self.base}/missing")
        self.assertIsInstance(out, FetchSuccess)
        self.assertEqual(out.status_code, 404)
        self.assertEqual(out.body, b"<title>Gone</title>")

    def test_closed_port_is_connection_refused(self) -> None:
        out = Fetcher(timeout=5).fetch(f"http://127.0.0.1:{_closed_port()}")
        self.assertIsInstance(out, FetchFailure)
        self.assertEqual(out.error_type, "connection_refused")


if __name__ == "__main__":
    unittest.main()
