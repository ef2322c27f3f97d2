"""Report builders turning snapshots into structured, renderable reports.

Each builder is a total function: any snapshot, including an all-zero
one, yields a report. A process that cannot be resolved yields a
one-line diagnostic report rather than an exception.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from pidscope import metrics, rendering
from pidscope.config import ReportConfig
from pidscope.models import MemoryRegion, ProcessSnapshot, SocketHandle, ThreadSnapshot
from pidscope.regions import RegionLayout, classify_regions
from pidscope.sockets import (
    SocketAggregate,
    aggregate_sockets,
    is_ip_family,
    socket_family_name,
    socket_state_name,
    socket_type_name,
)

PROCESS_NOT_FOUND = "Invalid PID or process has no memory context"
THREADS_NOT_FOUND = "Invalid PID or process not found"
SOCKETS_NOT_FOUND = "Invalid PID or process not found"
NO_SOCKETS = "No open sockets"
HEAP_LIMITATION = (
    "Note: HEAP covers the brk heap only; mmap and allocator arena "
    "allocations are not tracked."
)


@dataclass(slots=True, frozen=True)
class MemoryPressure:
    """Memory pressure figures of a process, sizes in kilobytes."""

    resident_kb: int
    anon_kb: int
    file_kb: int
    shmem_kb: int
    virtual_kb: int
    swap_kb: int
    resident_percent: int  # resident share of the virtual size
    major_faults: int
    minor_faults: int
    total_faults: int
    high_pressure: bool
    oom_score_adj: int
    oom_score_adj_valid: bool


@dataclass(slots=True, frozen=True)
class RegionBar:
    """One row of the region visualization."""

    name: str
    size: int
    width: int


@dataclass(slots=True, frozen=True)
class ProcessReport:
    """Process section: identity, CPU usage, memory pressure and layout."""

    pid: int | None
    found: bool
    lines: tuple[str, ...]
    name: str = ""
    cmdline: str = ""
    cpu_usage: int = 0  # permyriad
    layout: RegionLayout | None = None
    memory: MemoryPressure | None = None
    bars: tuple[RegionBar, ...] = ()

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


@dataclass(slots=True, frozen=True)
class ThreadSummary:
    """Rendered facts of a single thread."""

    tid: int
    name: str
    cpu_usage: int  # permyriad
    state: str
    priority: int
    nice: int
    affinity: str


@dataclass(slots=True, frozen=True)
class ThreadReport:
    """Thread section: one summary per thread in enumeration order."""

    pid: int
    found: bool
    lines: tuple[str, ...]
    threads: tuple[ThreadSummary, ...] = ()

    @property
    def thread_count(self) -> int:
        return len(self.threads)

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


@dataclass(slots=True, frozen=True)
class SocketSummary:
    """Classified facts of a single socket."""

    index: int
    family: str
    type: str
    state: str
    local: str | None
    remote: str | None
    interface: str | None


@dataclass(slots=True, frozen=True)
class SocketReport:
    """Socket section: per-socket details plus network aggregates."""

    pid: int
    found: bool
    lines: tuple[str, ...]
    sockets: tuple[SocketSummary, ...] = ()
    aggregate: SocketAggregate = field(default_factory=SocketAggregate)

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


def _display_cmdline(cmdline: str) -> str:
    return cmdline.replace("\0", " ").strip()


def memory_pressure(snapshot: ProcessSnapshot, page_size: int = 4096) -> MemoryPressure:
    """Compute resident/swap sizes, fault totals and the pressure flag."""
    resident_kb = metrics.pages_to_kb(
        metrics.rss_pages(snapshot.anon_pages, snapshot.file_pages, snapshot.shmem_pages),
        page_size,
    )
    swap_kb = metrics.pages_to_kb(snapshot.swap_pages, page_size)
    virtual_kb = metrics.pages_to_kb(snapshot.virtual_pages, page_size)
    return MemoryPressure(
        resident_kb=resident_kb,
        anon_kb=metrics.pages_to_kb(snapshot.anon_pages, page_size),
        file_kb=metrics.pages_to_kb(snapshot.file_pages, page_size),
        shmem_kb=metrics.pages_to_kb(snapshot.shmem_pages, page_size),
        virtual_kb=virtual_kb,
        swap_kb=swap_kb,
        resident_percent=metrics.memory_usage_percent(resident_kb, virtual_kb),
        major_faults=snapshot.major_faults,
        minor_faults=snapshot.minor_faults,
        total_faults=metrics.total_faults(snapshot.major_faults, snapshot.minor_faults),
        high_pressure=metrics.is_high_memory_pressure(resident_kb, swap_kb),
        oom_score_adj=snapshot.oom_score_adj,
        oom_score_adj_valid=metrics.is_valid_oom_adjustment(snapshot.oom_score_adj),
    )


def region_bars(regions: Sequence[MemoryRegion], bar_width: int = 50) -> list[RegionBar]:
    """Proportional bars for the non-empty regions; empty when nothing exists."""
    visible = [region for region in regions if region.exists and region.size > 0]
    total = sum(region.size for region in visible)
    if total == 0:
        return []
    return [
        RegionBar(
            region.name,
            region.size,
            rendering.calculate_bar_width(region.size, total, bar_width),
        )
        for region in visible
    ]


def _pressure_lines(memory: MemoryPressure) -> list[str]:
    oom = str(memory.oom_score_adj)
    if not memory.oom_score_adj_valid:
        oom += " (out of range)"
    pressure = "HIGH (swap above 10% of RSS)" if memory.high_pressure else "normal"
    return [
        "Memory pressure:",
        f"  RSS:          {memory.resident_kb} KB (anon {memory.anon_kb} KB, "
        f"file {memory.file_kb} KB, shmem {memory.shmem_kb} KB)",
        f"  Virtual size: {memory.virtual_kb} KB (RSS {memory.resident_percent}% of virtual)",
        f"  Swap:         {memory.swap_kb} KB",
        f"  Page faults:  Major: {memory.major_faults}, Minor: {memory.minor_faults}, "
        f"Total: {memory.total_faults}",
        f"  OOM adj:      {oom}",
        f"  Pressure:     {pressure}",
    ]


def _layout_lines(layout: RegionLayout) -> list[str]:
    lines = ["Memory layout:"]
    for region in layout.regions:
        if region.exists:
            lines.append(
                f"  {region.name:<6} {rendering.format_address(region.start)} - "
                f"{rendering.format_address(region.end)} "
                f"({rendering.format_size(region.size)})"
            )
        else:
            lines.append(f"  {region.name:<6} absent")
    lines.append(f"  Image base: {rendering.format_address(layout.image_base)} (first mapping)")
    return lines


def build_process_report(
    snapshot: ProcessSnapshot | None,
    *,
    pid: int | None = None,
    config: ReportConfig | None = None,
) -> ProcessReport:
    """Build the process section of a report."""
    config = config or ReportConfig()
    if snapshot is None or not snapshot.has_memory_context:
        return ProcessReport(
            pid=pid if snapshot is None else snapshot.pid,
            found=False,
            lines=(PROCESS_NOT_FOUND,),
        )

    usage = metrics.usage_permyriad(
        snapshot.cpu_time_ns, snapshot.now_ns - snapshot.start_time_ns
    )
    layout = classify_regions(snapshot)
    memory = memory_pressure(snapshot, config.page_size)
    bars = region_bars(layout.regions, config.bar_width)
    cmdline = _display_cmdline(snapshot.cmdline)

    lines = rendering.section("PROCESS INFORMATION", config.banner_width)
    lines += [
        f"PID:            {snapshot.pid}",
        f"Name:           {snapshot.name}",
        f"Command line:   {cmdline or '-'}",
        f"CPU usage:      {rendering.format_permyriad(usage)}%",
        "",
    ]
    lines += _pressure_lines(memory)
    lines.append("")
    lines += _layout_lines(layout)
    if bars:
        lines += ["", "Memory visualization:"]
        by_name = {region.name: region for region in layout.regions}
        for bar in bars:
            lines += rendering.region_bar(by_name[bar.name], bar.width, config.bar_width)
    lines.append(HEAP_LIMITATION)

    return ProcessReport(
        pid=snapshot.pid,
        found=True,
        lines=tuple(lines),
        name=snapshot.name,
        cmdline=cmdline,
        cpu_usage=usage,
        layout=layout,
        memory=memory,
        bars=tuple(bars),
    )


def _thread_nice(thread: ThreadSnapshot) -> int:
    # Real-time and unknown priorities carry no nice offset
    if thread.priority in metrics.NORMAL_PRIORITY_RANGE:
        return metrics.nice_from_priority(thread.priority)
    return thread.nice


def build_thread_report(
    threads: Sequence[ThreadSnapshot],
    *,
    pid: int,
    now_ns: int,
    found: bool = True,
    config: ReportConfig | None = None,
) -> ThreadReport:
    """Build the thread section, one line per thread in provider order."""
    config = config or ReportConfig()
    if not found:
        return ThreadReport(pid=pid, found=False, lines=(THREADS_NOT_FOUND,))

    summaries = []
    for thread in threads:
        summaries.append(
            ThreadSummary(
                tid=thread.tid,
                name=thread.name,
                cpu_usage=metrics.usage_permyriad(
                    thread.cpu_time_ns, now_ns - thread.start_time_ns
                ),
                state=rendering.thread_state_char(thread.state),
                priority=thread.priority,
                nice=_thread_nice(thread),
                affinity=rendering.affinity_string(thread.affinity, config.affinity_cpus),
            )
        )

    lines = rendering.section("THREAD INFORMATION", config.banner_width)
    lines.append(rendering.THREAD_HEADER)
    for summary in summaries:
        lines.append(
            rendering.thread_line(
                summary.tid,
                summary.name,
                summary.cpu_usage,
                summary.state,
                summary.priority,
                summary.nice,
                summary.affinity,
            )
        )
    lines.append(f"Total threads: {len(summaries)}")
    return ThreadReport(pid=pid, found=True, lines=tuple(lines), threads=tuple(summaries))


def _summarize_socket(index: int, handle: SocketHandle) -> SocketSummary:
    local = remote = interface = None
    if handle.ifindex > 0:
        interface = handle.ifname or f"if{handle.ifindex}"
    if is_ip_family(handle.family):
        local = rendering.format_endpoint(handle.local_address, handle.local_port)
        remote = rendering.format_endpoint(handle.remote_address, handle.remote_port)
    return SocketSummary(
        index=index,
        family=socket_family_name(handle.family),
        type=socket_type_name(handle.type),
        state=socket_state_name(handle.state),
        local=local,
        remote=remote,
        interface=interface,
    )


def _totals_lines(aggregate: SocketAggregate) -> list[str]:
    totals = aggregate.totals
    lines = [
        "Network totals (stream sockets):",
        f"  Packets in/out:  {totals.packets_in} / {totals.packets_out}",
        f"  Bytes in/out:    {rendering.format_size(totals.bytes_in)} / "
        f"{rendering.format_size(totals.bytes_out)}",
        f"  Retransmits:     {totals.retransmits}",
        f"  Drops:           {totals.drops}",
        "Interfaces:",
    ]
    if not aggregate.interfaces:
        lines.append("  none")
    for entry in aggregate.interfaces:
        label = entry.name or f"if{entry.ifindex}"
        noun = "socket" if entry.count == 1 else "sockets"
        lines.append(f"  {label} (index {entry.ifindex}): {entry.count} {noun}")
    return lines


def build_socket_report(
    handles: Sequence[SocketHandle],
    *,
    pid: int,
    found: bool = True,
    config: ReportConfig | None = None,
) -> SocketReport:
    """Build the socket section with per-socket lines and aggregates."""
    config = config or ReportConfig()
    if not found:
        return SocketReport(pid=pid, found=False, lines=(SOCKETS_NOT_FOUND,))

    lines = rendering.section("SOCKET INFORMATION", config.banner_width)
    if not handles:
        lines.append(NO_SOCKETS)
        return SocketReport(pid=pid, found=True, lines=tuple(lines))

    summaries = [_summarize_socket(index, handle) for index, handle in enumerate(handles)]
    aggregate = aggregate_sockets(handles, config.interface_capacity)
    for summary in summaries:
        endpoints = f"{summary.local} -> {summary.remote}" if summary.local else None
        lines.append(
            rendering.socket_line(
                summary.index,
                summary.family,
                summary.type,
                summary.state,
                endpoints,
                summary.interface,
            )
        )
    lines.append("")
    lines += _totals_lines(aggregate)
    lines.append(f"Total sockets: {aggregate.socket_count}")
    return SocketReport(
        pid=pid,
        found=True,
        lines=tuple(lines),
        sockets=tuple(summaries),
        aggregate=aggregate,
    )
