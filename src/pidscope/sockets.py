"""Socket classification and per-process network aggregation."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from pidscope.models import InterfaceTally, SocketHandle

AF_UNIX = 1
AF_INET = 2
AF_INET6 = 10
AF_NETLINK = 16

SOCK_STREAM = 1
SOCK_DGRAM = 2
SOCK_RAW = 3

INTERFACE_CAPACITY = 8

SOCKET_FAMILIES = {
    AF_UNIX: "AF_UNIX",
    AF_INET: "AF_INET",
    AF_INET6: "AF_INET6",
    AF_NETLINK: "AF_NETLINK",
}

SOCKET_TYPES = {
    SOCK_STREAM: "STREAM",
    SOCK_DGRAM: "DGRAM",
    SOCK_RAW: "RAW",
}

TCP_STATES = {
    1: "ESTABLISHED",
    2: "SYN_SENT",
    3: "SYN_RECV",
    4: "FIN_WAIT1",
    5: "FIN_WAIT2",
    6: "TIME_WAIT",
    7: "CLOSE",
    8: "CLOSE_WAIT",
    9: "LAST_ACK",
    10: "LISTEN",
    11: "CLOSING",
    12: "NEW_SYN_RECV",
}

UNKNOWN = "UNKNOWN"


def socket_family_name(family: int) -> str:
    return SOCKET_FAMILIES.get(family, UNKNOWN)


def socket_type_name(sock_type: int) -> str:
    return SOCKET_TYPES.get(sock_type, UNKNOWN)


def socket_state_name(state: int | None) -> str:
    """Name of a TCP state code; '-' for sockets without a state."""
    if state is None:
        return "-"
    return TCP_STATES.get(state, UNKNOWN)


def is_ip_family(family: int) -> bool:
    return family in (AF_INET, AF_INET6)


def is_stream_ip(handle: SocketHandle) -> bool:
    """TCP-like sockets, the only ones whose counters are aggregated."""
    return handle.type == SOCK_STREAM and is_ip_family(handle.family)


@dataclass(slots=True)
class SocketTotals:
    """Counters summed over the stream sockets of a process."""

    packets_in: int = 0
    packets_out: int = 0
    bytes_in: int = 0
    bytes_out: int = 0
    retransmits: int = 0
    drops: int = 0

    def add(self, handle: SocketHandle) -> None:
        if not is_stream_ip(handle):
            return
        self.packets_in += handle.segments_in
        self.packets_out += handle.segments_out
        self.bytes_in += handle.bytes_received
        self.bytes_out += handle.bytes_sent
        self.retransmits += handle.retransmits
        self.drops += handle.drops


class InterfaceTallyList:
    """
    Bounded per-interface socket counts in first-seen order.

    Once capacity distinct interfaces are held, sockets on any further
    interface are dropped without error.
    """

    def __init__(self, capacity: int = INTERFACE_CAPACITY) -> None:
        self._capacity = max(0, capacity)
        self._entries: list[InterfaceTally] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> list[InterfaceTally]:
        return list(self._entries)

    def add(self, ifindex: int, name: str) -> bool:
        """Count one socket on ifindex; False when it was dropped."""
        for entry in self._entries:
            if entry.ifindex == ifindex:
                entry.count += 1
                return True
        if len(self._entries) >= self._capacity:
            return False
        self._entries.append(InterfaceTally(ifindex=ifindex, name=name))
        return True

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(slots=True)
class SocketAggregate:
    """Result of folding all sockets of a process."""

    totals: SocketTotals = field(default_factory=SocketTotals)
    interfaces: list[InterfaceTally] = field(default_factory=list)
    socket_count: int = 0
    dropped_interfaces: int = 0


def aggregate_sockets(
    handles: Iterable[SocketHandle],
    capacity: int = INTERFACE_CAPACITY,
) -> SocketAggregate:
    """Sum counters and tally interfaces across socket handles."""
    totals = SocketTotals()
    tally = InterfaceTallyList(capacity)
    count = 0
    dropped = 0
    for handle in handles:
        count += 1
        totals.add(handle)
        # Unbound sockets have no interface to count
        if handle.ifindex > 0 and not tally.add(handle.ifindex, handle.ifname):
            dropped += 1
    return SocketAggregate(
        totals=totals,
        interfaces=tally.entries,
        socket_count=count,
        dropped_interfaces=dropped,
    )
