"""Inspection entry points combining the provider and report builders."""

import time
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from enum import Enum

from pidscope.config import ReportConfig
from pidscope.logging import get_logger
from pidscope.provider import SnapshotProvider
from pidscope.reports import (
    ProcessReport,
    SocketReport,
    ThreadReport,
    build_process_report,
    build_socket_report,
    build_thread_report,
)

log = get_logger(__name__)

# Longest PID text kept by a selection (a 20 byte buffer less its terminator)
PID_INPUT_MAX = 19


class InvalidPidError(ValueError):
    """Raised when PID text cannot be parsed into a process ID."""


class Section(Enum):
    """Report sections."""

    PROCESS = "process"
    THREADS = "threads"
    SOCKETS = "sockets"


ALL_SECTIONS = frozenset(Section)


def parse_pid(text: str) -> int:
    """Parse PID text, raising InvalidPidError for anything but a positive integer."""
    stripped = text.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        raise InvalidPidError(f"Invalid PID: {text.strip()!r}")
    pid = int(stripped)
    if pid <= 0:
        raise InvalidPidError(f"Invalid PID: {stripped!r}")
    return pid


class PidSelection:
    """
    Selected PID of one front-end session.

    Keeps the write-then-read protocol of a procfs style interface without
    sharing a register between sessions. Writes replace the previous
    selection and are truncated to PID_INPUT_MAX characters.
    """

    def __init__(self, initial: str = "1") -> None:
        self._text = initial[:PID_INPUT_MAX]

    @property
    def text(self) -> str:
        return self._text

    def write(self, text: str) -> int:
        """Replace the selection, returning the number of characters kept."""
        self._text = text[:PID_INPUT_MAX]
        return len(self._text)

    @property
    def pid(self) -> int:
        """The selected PID; raises InvalidPidError when unparsable."""
        return parse_pid(self._text)


@dataclass(slots=True, frozen=True)
class InspectionReport:
    """The report sections produced for one PID."""

    pid: int
    process: ProcessReport | None = None
    threads: ThreadReport | None = None
    sockets: SocketReport | None = None

    def render(self) -> str:
        parts = [
            report.render()
            for report in (self.process, self.threads, self.sockets)
            if report is not None
        ]
        return "\n".join(parts)

    def to_dict(self) -> dict:
        """Structured form of the report, without the rendered lines."""
        data = asdict(self)
        for name in ("process", "threads", "sockets"):
            if data[name] is not None:
                data[name].pop("lines", None)
        return data


class Inspector:
    """
    Builds reports for explicitly given PIDs.

    Holds no per-request state, so a single instance can serve concurrent
    callers.
    """

    def __init__(self, provider: SnapshotProvider, config: ReportConfig | None = None) -> None:
        self._provider = provider
        self._config = config or ReportConfig()

    def inspect(self, pid: int, sections: Iterable[Section] = ALL_SECTIONS) -> InspectionReport:
        """Collect a snapshot of pid and build the requested sections."""
        sections = frozenset(sections)
        snapshot = self._provider.get_process_snapshot(pid)
        found = snapshot is not None
        now_ns = snapshot.now_ns if snapshot is not None else time.time_ns()

        process = threads = sockets = None
        if Section.PROCESS in sections:
            process = build_process_report(snapshot, pid=pid, config=self._config)
        if Section.THREADS in sections:
            threads = build_thread_report(
                self._provider.get_threads(pid) if found else [],
                pid=pid,
                now_ns=now_ns,
                found=found,
                config=self._config,
            )
        if Section.SOCKETS in sections:
            sockets = build_socket_report(
                self._provider.get_sockets(pid) if found else [],
                pid=pid,
                found=found,
                config=self._config,
            )

        log.info(
            "process inspected",
            pid=pid,
            found=found,
            sections=sorted(section.value for section in sections),
        )
        return InspectionReport(pid=pid, process=process, threads=threads, sockets=sockets)

    def render(self, pid: int, sections: Iterable[Section] = ALL_SECTIONS) -> str:
        return self.inspect(pid, sections).render()

    def render_text(self, pid_text: str, sections: Iterable[Section] = ALL_SECTIONS) -> str:
        """Render a report for PID text, reporting unparsable input inline."""
        try:
            pid = parse_pid(pid_text)
        except InvalidPidError as e:
            log.info("invalid pid input", text=pid_text)
            return f"{e}\n"
        return self.render(pid, sections)
