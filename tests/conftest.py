"""Pytest fixtures shared by the client tests."""

import concurrent.futures
import threading

import pytest

from sellsy.activity import ActivityLogger
from sellsy.transport import Transport


class FakeTransport(Transport):
    """In-memory transport recording every request."""

    def __init__(self, body: bytes = b'{"status":"success","response":{}}', error: Exception = None):
        self.body = body
        self.error = error
        self.requests = []
        self.pending = []
        self.closed = False

    def post(self, url, headers, fields, verify):
        self.requests.append({"url": url, "headers": headers, "fields": fields, "verify": verify})
        if self.error is not None:
            raise self.error
        return self.body

    def post_async(self, url, headers, fields, verify):
        self.requests.append({"url": url, "headers": headers, "fields": fields, "verify": verify})
        future = concurrent.futures.Future()
        self.pending.append(future)
        return future

    def close(self):
        self.closed = True


class RecordingActivityLogger(ActivityLogger):
    def __init__(self):
        self.entries = []
        self._lock = threading.Lock()

    def emit(self, call_id, direction, line):
        with self._lock:
            self.entries.append((call_id, direction, line))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def activity() -> RecordingActivityLogger:
    return RecordingActivityLogger()
