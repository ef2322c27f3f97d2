"""Data models for pidscope."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class AddressRange:
    """One mapped region of a process address space, as enumerated."""

    start: int
    end: int


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process taken for a single report."""

    pid: int
    name: str
    cmdline: str = ""
    cpu_time_ns: int = 0  # user + system
    start_time_ns: int = 0
    now_ns: int = 0
    start_code: int = 0
    end_code: int = 0
    start_data: int = 0
    end_data: int = 0
    start_brk: int = 0
    brk: int = 0
    start_stack: int = 0  # declared stack top
    anon_pages: int = 0
    file_pages: int = 0
    shmem_pages: int = 0
    swap_pages: int = 0
    virtual_pages: int = 0
    major_faults: int = 0
    minor_faults: int = 0
    oom_score_adj: int = 0
    regions: tuple[AddressRange, ...] = ()  # ordered by start address
    has_memory_context: bool = True


@dataclass(slots=True, frozen=True)
class MemoryRegion:
    """A named segment derived from a snapshot."""

    name: str  # CODE, DATA, BSS, HEAP or STACK
    start: int
    end: int
    exists: bool

    @property
    def size(self) -> int:
        """Size in bytes, 0 for absent or degenerate regions."""
        if not self.exists or self.end < self.start:
            return 0
        return self.end - self.start


@dataclass(slots=True, frozen=True)
class ThreadSnapshot:
    """Immutable snapshot of one thread of a process."""

    tid: int
    name: str
    cpu_time_ns: int = 0
    start_time_ns: int = 0
    state: int = 0  # raw kernel state code
    priority: int = 120  # kernel priority, 100..139 for normal tasks
    nice: int = 0
    affinity: tuple[bool, ...] = ()  # first N CPUs


@dataclass(slots=True, frozen=True)
class SocketHandle:
    """Immutable snapshot of one open socket of a process."""

    family: int
    type: int
    state: int | None = None  # TCP state code, None when not applicable
    local_address: str | None = None
    local_port: int | None = None
    remote_address: str | None = None
    remote_port: int | None = None
    segments_in: int = 0
    segments_out: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    retransmits: int = 0
    drops: int = 0
    ifindex: int = 0  # 0 when not bound to an interface
    ifname: str = ""
    fd: int = -1


@dataclass(slots=True)
class InterfaceTally:
    """Number of sockets observed on one network interface."""

    ifindex: int
    name: str
    count: int = 1
