"""Tests for the Inspector and per-session PID selection."""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
from conftest import FakeProvider, make_snapshot

from pidscope.inspector import (
    ALL_SECTIONS,
    PID_INPUT_MAX,
    Inspector,
    InvalidPidError,
    PidSelection,
    Section,
    parse_pid,
)
from pidscope.reports import PROCESS_NOT_FOUND, THREADS_NOT_FOUND


class TestParsePid:
    """Tests for parse_pid."""

    def test_valid(self):
        assert parse_pid("1234") == 1234
        assert parse_pid("  42\n") == 42

    @pytest.mark.parametrize("text", ["", "abc", "12ab", "-5", "0", "3.5", "٣"])
    def test_invalid(self, text):
        with pytest.raises(InvalidPidError):
            parse_pid(text)

    def test_invalid_pid_error_is_value_error(self):
        assert issubclass(InvalidPidError, ValueError)


class TestPidSelection:
    """Tests for PidSelection."""

    def test_default_selection(self):
        assert PidSelection().pid == 1

    def test_write_replaces_previous(self):
        selection = PidSelection()
        selection.write("123456")
        selection.write("77")
        assert selection.text == "77"
        assert selection.pid == 77

    def test_write_is_bounded(self):
        """Long input is truncated to the buffer size, not rejected."""
        selection = PidSelection()
        kept = selection.write("12345678901234567890123")
        assert kept == PID_INPUT_MAX == 19
        assert selection.text == "1234567890123456789"

    def test_sessions_are_independent(self):
        first, second = PidSelection(), PidSelection()
        first.write("10")
        second.write("20")
        assert (first.pid, second.pid) == (10, 20)

    def test_invalid_selection_raises_on_read(self):
        selection = PidSelection()
        selection.write("nope")
        with pytest.raises(InvalidPidError):
            _ = selection.pid


class TestInspector:
    """Tests for Inspector."""

    def test_all_sections(self, provider):
        report = Inspector(provider).inspect(4242)
        assert report.process.found
        assert report.threads.thread_count == 2
        assert report.sockets.aggregate.socket_count == 4
        text = report.render()
        assert text.index("PROCESS INFORMATION") < text.index("THREAD INFORMATION")
        assert text.index("THREAD INFORMATION") < text.index("SOCKET INFORMATION")

    def test_threads_use_snapshot_clock(self, provider):
        """Thread usage is computed against the snapshot's current time."""
        report = Inspector(provider).inspect(4242, {Section.THREADS})
        assert report.threads.threads[0].cpu_usage == 5000
        assert report.process is None
        assert report.sockets is None

    def test_unknown_pid(self, provider):
        """Unknown PIDs produce inline messages and skip enumeration."""
        report = Inspector(provider).inspect(99999)
        assert report.process.lines == (PROCESS_NOT_FOUND,)
        assert report.threads.lines == (THREADS_NOT_FOUND,)
        assert not report.sockets.found
        assert ("threads", 99999) not in provider.calls
        assert ("sockets", 99999) not in provider.calls

    def test_process_without_memory_context_still_lists_threads(self):
        snapshot = make_snapshot(pid=2, name="kthreadd", has_memory_context=False)
        provider = FakeProvider(snapshots={2: snapshot})
        report = Inspector(provider).inspect(2)
        assert not report.process.found
        assert report.threads.found
        assert report.threads.thread_count == 0

    def test_render_text_invalid_input(self, provider):
        """Unparsable PID text is reported without requesting a snapshot."""
        text = Inspector(provider).render_text("pid?")
        assert text.startswith("Invalid PID")
        assert provider.calls == []

    def test_render_text_valid_input(self, provider):
        assert "PID:            4242" in Inspector(provider).render_text("4242")

    def test_to_dict_is_json_serializable(self, provider):
        data = Inspector(provider).inspect(4242, ALL_SECTIONS).to_dict()
        encoded = json.loads(json.dumps(data))
        assert encoded["pid"] == 4242
        assert "lines" not in encoded["process"]
        assert encoded["process"]["layout"]["heap"]["name"] == "HEAP"
        assert encoded["sockets"]["aggregate"]["interfaces"][0]["name"] == "eth0"

    def test_concurrent_requests(self, provider):
        """Concurrent inspections of different PIDs do not interfere."""
        other = make_snapshot(pid=7, name="other")
        provider.snapshots[7] = other
        inspector = Inspector(provider)
        pids = [4242, 7] * 20
        with ThreadPoolExecutor(max_workers=8) as pool:
            reports = list(pool.map(inspector.inspect, pids))
        assert [r.process.name for r in reports] == ["worker", "other"] * 20
