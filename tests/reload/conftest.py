"""Test fixtures for reload trigger tests."""

import signal
import threading
import time

import pytest

from reloadable_certs import LoadError, ReloadManager, Reloadable


class DummyReloadable(Reloadable):
    """Reloadable counting its reloads, optionally failing."""

    def __init__(self, fail_on_reload=False):
        self.fail_on_reload = fail_on_reload
        self.reload_calls = 0
        self._condition = threading.Condition()

    def reload(self):
        with self._condition:
            self.reload_calls += 1
            self._condition.notify_all()
        if self.fail_on_reload:
            raise LoadError("failed reload")

    def wait_for_reloads(self, count, timeout=5.0):
        with self._condition:
            return self._condition.wait_for(lambda: self.reload_calls >= count, timeout=timeout)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def manager():
    """Create a manager that is cleaned up after the test."""
    with ReloadManager() as manager:
        yield manager


@pytest.fixture
def reloadable():
    return DummyReloadable()


@pytest.fixture
def failing_reloadable():
    return DummyReloadable(fail_on_reload=True)


@pytest.fixture
def waiter():
    """Return a polling helper waiting for a condition to hold."""
    return wait_until


@pytest.fixture
def listener_threads():
    """Return a function listing live listener threads for a reloadable."""
    def find(reloadable):
        prefix = f"cert-reload-{type(reloadable).__name__}-{id(reloadable):x}"
        return [t for t in threading.enumerate() if t.name == prefix]
    return find


@pytest.fixture
def sighup():
    """
    Install a recording SIGHUP handler for the duration of the test.

    Yields an event set whenever the recording handler receives SIGHUP, so
    signals that no reload registration consumes do not end the process.
    """
    received = threading.Event()

    def handler(signum, frame):
        received.set()

    original = signal.signal(signal.SIGHUP, handler)
    yield received
    signal.signal(signal.SIGHUP, original)
