from __future__ import annotations

import io
import threading
import unittest
from http.server import BaseHTTPRequestHandler, HTTPServer

from makelaars.analyzer import run
from makelaars.config import FetchConfig
from makelaars.ratelimit import RateLimiter
from makelaars.reporting import RankedEntry
from makelaars.scraper import FetchFailure, PageFetcher, PageResult

PAGE_BODY = b'{"Objects": [{"MakelaarId": 1, "MakelaarNaam": "A"}], "Paging": {"TotalPages": 1}}'


class FundaHandler(BaseHTTPRequestHandler):
    """Answers according to the API key at the start of the path."""

    def do_GET(self):
        if self.path.startswith("/truncated/"):
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", "1000")
            self.end_headers()
            self.wfile.write(b'{"Objects": [')
        elif self.path.startswith("/broken/"):
            self.send_response(500)
            self.send_header("Content-Length", "0")
            self.end_headers()
        else:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(PAGE_BODY)))
            self.end_headers()
            self.wfile.write(PAGE_BODY)

    def log_message(self, format, *args):
        pass


class DefaultTransportTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.server = HTTPServer(("127.0.0.1", 0), FundaHandler)
        cls.thread = threading.Thread(target=cls.server.serve_forever, daemon=True)
        cls.thread.start()
        cls.base_url = f"http://127.0.0.1:{cls.server.server_address[1]}/"

    @classmethod
    def tearDownClass(cls):
        cls.server.shutdown()
        cls.server.server_close()
        cls.thread.join()

    def make_fetcher(self, api_key: str, sleeps=None) -> PageFetcher:
        sleeps = sleeps if sleeps is not None else []
        config = FetchConfig(api_key=api_key, base_url=self.base_url)
        return PageFetcher(config, rate_limiter=RateLimiter(0), timeout=5, sleep=sleeps.append)

    def test_downloads_and_decodes_a_page(self):
        result = self.make_fetcher("KEY").fetch("/amsterdam", 1)

        self.assertIsInstance(result, PageResult)
        self.assertEqual(result.total_pages, 1)
        self.assertEqual(result.listings[0].makelaar_naam, "A")

    def test_truncated_body_is_a_failure(self):
        sleeps = []
        with self.assertLogs("makelaars.scraper", level="WARNING"):
            result = self.make_fetcher("truncated", sleeps).fetch("/amsterdam", 1)

        self.assertIsInstance(result, FetchFailure)
        self.assertEqual(sleeps, [5.0])

    def test_server_error_is_a_failure(self):
        with self.assertLogs("makelaars.scraper", level="WARNING") as logs:
            result = self.make_fetcher("broken").fetch("/amsterdam", 1)

        self.assertIsInstance(result, FetchFailure)
        self.assertIn("500", logs.output[0])

    def test_truncated_body_does_not_escape_the_run(self):
        stream = io.StringIO()
        fetcher = self.make_fetcher("truncated")

        with self.assertLogs("makelaars.scraper", level="WARNING"):
            reports = run(fetcher.config, fetcher=fetcher, stream=stream)

        self.assertEqual([report.entries for report in reports], [[], []])
        self.assertIn("TOP 10 MAKELAARS IN AMSTERDAM WITH GARDEN", stream.getvalue())

    def test_full_run_against_the_server(self):
        stream = io.StringIO()
        fetcher = self.make_fetcher("KEY")

        reports = run(fetcher.config, fetcher=fetcher, stream=stream)

        self.assertEqual(reports[0].entries, [RankedEntry("A", 1)])
        self.assertEqual(reports[1].entries, [RankedEntry("A", 1)])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
