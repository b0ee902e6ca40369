"""Tests for claude_overseer.services.debouncer."""

import threading

import pytest

from claude_overseer.services.debouncer import Debouncer
from helpers import process_events, wait_until


@pytest.fixture
def debouncer(qapp):
    d = Debouncer(interval_ms=30)
    yield d
    d.cancel_all()


class TestDebouncer:
    def test_fires_once_after_quiet_window(self, debouncer):
        fired = []
        debouncer.trigger("k", lambda: fired.append(1))
        assert debouncer.is_pending("k")
        assert wait_until(lambda: fired == [1])
        assert not debouncer.is_pending("k")

    def test_burst_collapses(self, debouncer):
        fired = []
        for i in range(20):
            debouncer.trigger("k", lambda i=i: fired.append(i))
        process_events(0.2)
        # Latest callback wins
        assert fired == [19]

    def test_keys_are_independent(self, debouncer):
        fired = []
        debouncer.trigger("a", lambda: fired.append("a"))
        debouncer.trigger("b", lambda: fired.append("b"))
        assert sorted(debouncer.pending_keys()) == ["a", "b"]
        process_events(0.2)
        assert sorted(fired) == ["a", "b"]

    def test_cancel(self, debouncer):
        fired = []
        debouncer.trigger("k", lambda: fired.append(1))
        debouncer.cancel("k")
        process_events(0.1)
        assert fired == []

    def test_cancel_all(self, debouncer):
        fired = []
        debouncer.trigger("a", lambda: fired.append("a"))
        debouncer.trigger("b", lambda: fired.append("b"))
        debouncer.cancel_all()
        process_events(0.1)
        assert fired == []
        assert debouncer.pending_keys() == []

    def test_trigger_from_worker_thread(self, debouncer):
        fired = []
        t = threading.Thread(target=lambda: debouncer.trigger("k", lambda: fired.append(threading.current_thread())))
        t.start()
        t.join()
        assert wait_until(lambda: len(fired) == 1)
        # Callback runs on the debouncer's own thread
        assert fired[0] is threading.main_thread()

    def test_failing_callback_does_not_break_later_triggers(self, debouncer):
        fired = []

        def boom():
            raise RuntimeError("boom")

        debouncer.trigger("k", boom)
        process_events(0.1)
        debouncer.trigger("k", lambda: fired.append(1))
        assert wait_until(lambda: fired == [1])
