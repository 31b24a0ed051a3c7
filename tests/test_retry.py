import unittest
from types import SimpleNamespace

from googleapiclient.errors import HttpError

from app.services.calendar_client import GoogleCalendarClient
from app.services.retry import with_retries


def _http_error(status):
    return HttpError(SimpleNamespace(status=status, reason="x"), b"{}")


class WithRetriesTests(unittest.TestCase):
    def test_gives_up_after_max_attempts(self):
        calls = {"n": 0}

        def _always_busy():
            calls["n"] += 1
            raise _http_error(503)

        with self.assertRaises(HttpError):
            with_retries(_always_busy, GoogleCalendarClient._should_retry, base_delay_s=0)
        self.assertEqual(calls["n"], 3)

    def test_calendar_client_errors_not_retried(self):
        calls = {"n": 0}

        def _not_found():
            calls["n"] += 1
            raise _http_error(404)

        with self.assertRaises(HttpError):
            with_retries(_not_found, GoogleCalendarClient._should_retry, base_delay_s=0)
        self.assertEqual(calls["n"], 1)

    def test_returns_first_success(self):
        self.assertEqual(with_retries(lambda: "ok", lambda e: True), "ok")


if __name__ == "__main__":
    unittest.main()
