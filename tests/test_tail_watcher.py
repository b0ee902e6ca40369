"""Tests for live tailing of session files."""

import pytest

from claude_overseer.services.jsonl_parser import parse_line
from claude_overseer.services.tail_watcher import TailWatcher, TailWatcherRegistry
from helpers import append, assistant_line, process_events, user_line, wait_until


@pytest.fixture
def tail(qapp, session_file):
    w = TailWatcher(str(session_file))
    yield w
    w.stop()


@pytest.fixture
def received(tail):
    got = []
    tail.new_messages.connect(lambda path, records: got.append((path, records)))
    return got


class TestStart:
    def test_starts_at_end_of_file(self, tail, session_file):
        tail.start()
        assert tail.offset == session_file.stat().st_size
        assert tail.check() == []

    def test_missing_file_starts_at_zero(self, qapp, project_dir):
        w = TailWatcher(str(project_dir / "later.jsonl"))
        w.start()
        assert w.offset == 0
        w.stop()


class TestIncrementalRead:
    def test_appended_lines_match_independent_parse(self, tail, received, session_file):
        tail.start()
        lines = [user_line(f"u-{i}", f"msg {i}") for i in range(5)]
        append(session_file, *lines)

        records = tail.check()
        assert records == [parse_line(line) for line in lines]
        assert len(received) == 1
        assert received[0][0] == str(session_file)
        assert len(received[0][1]) == 5

    def test_no_growth_is_noop(self, tail, received):
        tail.start()
        assert tail.check() == []
        assert received == []

    def test_partial_line_completed_later(self, tail, session_file):
        tail.start()
        line = assistant_line("a-9", "claude-opus-4-6", output_tokens=5)
        half = len(line) // 2
        start_offset = tail.offset

        with open(session_file, "a") as f:
            f.write(line[:half])
        assert tail.check() == []
        assert tail.offset == start_offset

        with open(session_file, "a") as f:
            f.write(line[half:] + "\n")
        records = tail.check()
        assert len(records) == 1
        assert records[0].uuid == "a-9"
        assert tail.check() == []

    def test_complete_lines_before_fragment_are_emitted(self, tail, session_file):
        tail.start()
        with open(session_file, "a") as f:
            f.write(user_line("u-1") + "\n" + user_line("u-2")[:10])
        assert [r.uuid for r in tail.check()] == ["u-1"]

    def test_truncation_restarts_from_zero(self, tail, session_file):
        tail.start()
        session_file.write_text(user_line("u-new") + "\n")
        records = tail.check()
        assert [r.uuid for r in records] == ["u-new"]
        assert tail.offset == session_file.stat().st_size

        append(session_file, user_line("u-after"))
        assert [r.uuid for r in tail.check()] == ["u-after"]

    def test_malformed_line_reported_and_skipped(self, tail, session_file):
        errors = []
        tail.error.connect(lambda path, msg: errors.append(msg))
        tail.start()
        append(session_file, "{broken", user_line("u-ok"))
        assert [r.uuid for r in tail.check()] == ["u-ok"]
        assert len(errors) == 1
        assert tail.is_active()

    def test_unsupported_records_are_silently_skipped(self, tail, session_file):
        errors = []
        tail.error.connect(lambda path, msg: errors.append(msg))
        tail.start()
        append(session_file, '{"type": "summary"}')
        assert tail.check() == []
        assert errors == []

    def test_deleted_file_reports_error_and_keeps_running(self, tail, session_file):
        errors = []
        tail.error.connect(lambda path, msg: errors.append(msg))
        tail.start()
        session_file.unlink()
        assert tail.check() == []
        assert errors and "stat failed" in errors[0]
        assert tail.is_active()


class TestWatching:
    def test_file_change_emits_new_messages(self, tail, received, session_file):
        tail.start()
        process_events(0.05)
        append(session_file, user_line("u-live"))
        assert wait_until(lambda: len(received) >= 1)
        assert received[0][1][0].uuid == "u-live"

    def test_stop_is_idempotent_and_silences(self, tail, received, session_file):
        tail.start()
        tail.stop()
        tail.stop()
        append(session_file, user_line("u-late"))
        process_events(0.3)
        tail.check()
        assert received == []
        assert not tail.is_active()


class TestRegistry:
    def test_watch_replaces_existing(self, qapp, session_file):
        registry = TailWatcherRegistry()
        first = registry.watch(str(session_file))
        second = registry.watch(str(session_file))
        assert first is not second
        assert not first.is_active()
        assert second.is_active()
        assert registry.paths() == [str(session_file)]
        registry.stop_all()

    def test_multiple_files(self, qapp, session_file, project_dir):
        other = project_dir / "sess-002.jsonl"
        other.write_text("")
        registry = TailWatcherRegistry()
        registry.watch(str(session_file))
        registry.watch(str(other))
        assert registry.is_watching(str(other))
        assert len(registry.paths()) == 2

        registry.unwatch(str(other))
        assert not registry.is_watching(str(other))
        registry.stop_all()
        assert registry.paths() == []

    def test_registry_forwards_records(self, qapp, session_file):
        registry = TailWatcherRegistry()
        got = []
        registry.new_messages.connect(lambda path, records: got.append(records))
        watcher = registry.watch(str(session_file))
        append(session_file, user_line("u-fwd"))
        watcher.check()
        assert len(got) == 1
        assert got[0][0].uuid == "u-fwd"
        registry.stop_all()
