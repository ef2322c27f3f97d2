"""Process snapshot provider for pidscope.

Collects process, thread and socket facts with psutil, reading the few
Linux procfs fields psutil does not expose (segment boundaries, raw
fault counters, per-thread scheduling state) directly.
"""

import os
import socket
import time
from pathlib import Path
from typing import Protocol

import psutil

from pidscope.logging import get_logger
from pidscope.models import AddressRange, ProcessSnapshot, SocketHandle, ThreadSnapshot
from pidscope.sockets import TCP_STATES

log = get_logger(__name__)

NS_PER_SECOND = 1_000_000_000

# /proc/<pid>/stat field numbers (1-based, as in proc(5))
_STAT_MINFLT = 10
_STAT_MAJFLT = 12
_STAT_PRIORITY = 18
_STAT_NICE = 19
_STAT_STARTTIME = 22
_STAT_STARTCODE = 26
_STAT_ENDCODE = 27
_STAT_STARTSTACK = 28
_STAT_START_DATA = 45
_STAT_END_DATA = 46
_STAT_START_BRK = 47

# Kernel task state codes for the letters shown in /proc/<pid>/stat
_STATE_CODES = {
    "R": 0x0000,
    "S": 0x0001,
    "D": 0x0002,
    "T": 0x0004,
    "t": 0x0008,
    "Z": 0x0020,
    "X": 0x0040,
    "I": 0x0402,
}

_TCP_STATE_CODES = {name: code for code, name in TCP_STATES.items()}

_UNSPECIFIED_ADDRESSES = {"0.0.0.0", "::"}


class SnapshotProvider(Protocol):
    """Source of process facts; returns None or empty results for unknown PIDs."""

    def get_process_snapshot(self, pid: int) -> ProcessSnapshot | None: ...

    def get_threads(self, pid: int) -> list[ThreadSnapshot]: ...

    def get_sockets(self, pid: int) -> list[SocketHandle]: ...


def parse_stat(content: str) -> tuple[str, dict[int, str]]:
    """
    Split a /proc stat line into the command name and numbered fields.

    The command name is enclosed in parentheses and may itself contain
    spaces or parentheses, so fields are taken after the last ')'.
    """
    open_paren = content.find("(")
    close_paren = content.rfind(")")
    if open_paren < 0 or close_paren < open_paren:
        return "", {}
    comm = content[open_paren + 1 : close_paren]
    rest = content[close_paren + 1 :].split()
    # rest starts at field 3 (state)
    return comm, {number: value for number, value in enumerate(rest, start=3)}


def _int_field(fields: dict[int, str], number: int) -> int:
    try:
        return int(fields.get(number, "0"))
    except ValueError:
        return 0


def parse_status_kb(content: str) -> dict[str, int]:
    """Collect the kB-valued lines of /proc/<pid>/status."""
    values: dict[str, int] = {}
    for line in content.splitlines():
        key, _, rest = line.partition(":")
        parts = rest.split()
        if len(parts) == 2 and parts[1] == "kB" and parts[0].isdigit():
            values[key] = int(parts[0])
    return values


def parse_maps(content: str) -> tuple[tuple[AddressRange, ...], AddressRange | None]:
    """Parse /proc/<pid>/maps into ordered ranges and the [heap] mapping."""
    ranges: list[AddressRange] = []
    heap: AddressRange | None = None
    for line in content.splitlines():
        parts = line.split(maxsplit=5)
        if not parts:
            continue
        start, _, end = parts[0].partition("-")
        try:
            mapping = AddressRange(int(start, 16), int(end, 16))
        except ValueError:
            continue
        ranges.append(mapping)
        if len(parts) == 6 and parts[5].strip() == "[heap]":
            heap = mapping
    ranges.sort(key=lambda r: r.start)
    return tuple(ranges), heap


class ProcfsProvider:
    """
    Snapshot provider backed by psutil and Linux procfs.

    Missing processes yield None or empty lists. Details that cannot be
    read (AccessDenied, vanished files) are left at zero so a report can
    still be built from what is available.
    """

    def __init__(
        self,
        proc_root: Path | str = "/proc",
        page_size: int | None = None,
        affinity_cpus: int = 8,
    ) -> None:
        """
        Initialize the ProcfsProvider.

        Args:
            proc_root: Root of the proc filesystem.
            page_size: Bytes per page. Defaults to the system page size.
            affinity_cpus: Number of CPUs captured in thread affinity masks.
        """
        self._proc_root = Path(proc_root)
        self._page_size = page_size or os.sysconf("SC_PAGE_SIZE")
        self._affinity_cpus = affinity_cpus
        self._clock_ticks = os.sysconf("SC_CLK_TCK")

    @property
    def page_size(self) -> int:
        return self._page_size

    def _read(self, *parts: str) -> str:
        """Read a procfs file, returning '' when it is gone or unreadable."""
        path = self._proc_root.joinpath(*parts)
        try:
            return path.read_text(errors="replace")
        except OSError as e:
            log.debug("procfs read failed", path=str(path), error=str(e))
            return ""

    def _kb_to_pages(self, kb: int) -> int:
        return kb * 1024 // self._page_size

    def get_process_snapshot(self, pid: int) -> ProcessSnapshot | None:
        """Collect a process snapshot, or None when the PID does not resolve."""
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                name = proc.name()
                cmdline = "\0".join(proc.cmdline())
                cpu = proc.cpu_times()
                create_time = proc.create_time()
                mem = proc.memory_info()
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            log.debug("process not found", pid=pid)
            return None
        except psutil.AccessDenied:
            log.debug("process access denied", pid=pid)
            return None

        _, stat = parse_stat(self._read(str(pid), "stat"))
        status = parse_status_kb(self._read(str(pid), "status"))
        regions, heap = parse_maps(self._read(str(pid), "maps"))
        start_brk = _int_field(stat, _STAT_START_BRK)
        # The [heap] mapping ends at the current break
        brk = heap.end if heap is not None else start_brk

        try:
            oom_score_adj = int(self._read(str(pid), "oom_score_adj").strip() or 0)
        except ValueError:
            oom_score_adj = 0

        return ProcessSnapshot(
            pid=pid,
            name=name,
            cmdline=cmdline,
            cpu_time_ns=int((cpu.user + cpu.system) * NS_PER_SECOND),
            start_time_ns=int(create_time * NS_PER_SECOND),
            now_ns=time.time_ns(),
            start_code=_int_field(stat, _STAT_STARTCODE),
            end_code=_int_field(stat, _STAT_ENDCODE),
            start_data=_int_field(stat, _STAT_START_DATA),
            end_data=_int_field(stat, _STAT_END_DATA),
            start_brk=start_brk,
            brk=brk,
            start_stack=_int_field(stat, _STAT_STARTSTACK),
            anon_pages=self._kb_to_pages(status.get("RssAnon", 0)),
            file_pages=self._kb_to_pages(status.get("RssFile", 0)),
            shmem_pages=self._kb_to_pages(status.get("RssShmem", 0)),
            swap_pages=self._kb_to_pages(status.get("VmSwap", 0)),
            virtual_pages=mem.vms // self._page_size,
            major_faults=_int_field(stat, _STAT_MAJFLT),
            minor_faults=_int_field(stat, _STAT_MINFLT),
            oom_score_adj=oom_score_adj,
            regions=regions,
            # Kernel threads have no address space
            has_memory_context=mem.vms > 0,
        )

    def _affinity(self, tid: int) -> tuple[bool, ...]:
        try:
            cpus = os.sched_getaffinity(tid)
        except OSError:
            return ()
        return tuple(cpu in cpus for cpu in range(self._affinity_cpus))

    def get_threads(self, pid: int) -> list[ThreadSnapshot]:
        """Collect one snapshot per live thread, in enumeration order."""
        try:
            threads = psutil.Process(pid).threads()
        except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
            log.debug("threads unavailable", pid=pid)
            return []

        boot_time = psutil.boot_time()
        snapshots: list[ThreadSnapshot] = []
        for thread in threads:
            comm, stat = parse_stat(self._read(str(pid), "task", str(thread.id), "stat"))
            if not stat:
                # Thread exited between enumeration and read
                continue
            start_ticks = _int_field(stat, _STAT_STARTTIME)
            start_seconds = boot_time + start_ticks / self._clock_ticks
            snapshots.append(
                ThreadSnapshot(
                    tid=thread.id,
                    name=comm,
                    cpu_time_ns=int((thread.user_time + thread.system_time) * NS_PER_SECOND),
                    start_time_ns=int(start_seconds * NS_PER_SECOND),
                    state=_STATE_CODES.get(stat.get(3, ""), -1),
                    # stat reports priority relative to MAX_RT_PRIO
                    priority=_int_field(stat, _STAT_PRIORITY) + 100,
                    nice=_int_field(stat, _STAT_NICE),
                    affinity=self._affinity(thread.id),
                )
            )
        return snapshots

    def _interface_index(self) -> dict[str, tuple[int, str]]:
        """Map local IP addresses to (ifindex, interface name)."""
        addresses: dict[str, tuple[int, str]] = {}
        for ifname, addrs in psutil.net_if_addrs().items():
            try:
                ifindex = socket.if_nametoindex(ifname)
            except OSError:
                continue
            for addr in addrs:
                if addr.family in (socket.AF_INET, socket.AF_INET6):
                    # Strip IPv6 zone suffixes such as fe80::1%eth0
                    addresses.setdefault(addr.address.split("%")[0], (ifindex, ifname))
        return addresses

    def get_sockets(self, pid: int) -> list[SocketHandle]:
        """
        Collect the open sockets of a process.

        psutil does not expose per-socket traffic counters, so those are
        reported as 0.
        """
        try:
            connections = psutil.Process(pid).net_connections(kind="all")
        except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
            log.debug("sockets unavailable", pid=pid)
            return []

        interfaces = self._interface_index()
        handles: list[SocketHandle] = []
        for conn in connections:
            family = int(conn.family)
            local_address = local_port = remote_address = remote_port = None
            ifindex, ifname = 0, ""
            if family in (socket.AF_INET, socket.AF_INET6):
                if conn.laddr:
                    local_address, local_port = conn.laddr.ip, conn.laddr.port
                if conn.raddr:
                    remote_address, remote_port = conn.raddr.ip, conn.raddr.port
                if local_address and local_address not in _UNSPECIFIED_ADDRESSES:
                    ifindex, ifname = interfaces.get(local_address, (0, ""))
            handles.append(
                SocketHandle(
                    family=family,
                    type=int(conn.type),
                    state=_TCP_STATE_CODES.get(conn.status),
                    local_address=local_address,
                    local_port=local_port,
                    remote_address=remote_address,
                    remote_port=remote_port,
                    ifindex=ifindex,
                    ifname=ifname,
                    fd=conn.fd,
                )
            )
        return handles
