"""Shared fixtures for pidscope tests."""

import pytest

from pidscope.models import AddressRange, ProcessSnapshot, SocketHandle, ThreadSnapshot


class FakeProvider:
    """In-memory snapshot provider keyed by PID."""

    def __init__(self, snapshots=None, threads=None, sockets=None):
        self.snapshots = snapshots or {}
        self.threads = threads or {}
        self.sockets = sockets or {}
        self.calls: list[tuple[str, int]] = []

    def get_process_snapshot(self, pid):
        self.calls.append(("process", pid))
        return self.snapshots.get(pid)

    def get_threads(self, pid):
        self.calls.append(("threads", pid))
        return list(self.threads.get(pid, []))

    def get_sockets(self, pid):
        self.calls.append(("sockets", pid))
        return list(self.sockets.get(pid, []))


def make_snapshot(**overrides) -> ProcessSnapshot:
    """A plausible process snapshot; any field can be overridden."""
    values = dict(
        pid=4242,
        name="worker",
        cmdline="/usr/bin/worker\0--fast\0",
        cpu_time_ns=250_000_000,
        start_time_ns=1_000_000_000,
        now_ns=2_000_000_000,
        start_code=0x400000,
        end_code=0x401000,
        start_data=0x601000,
        end_data=0x602000,
        start_brk=0x603000,
        brk=0x624000,
        start_stack=0x7FFD_F000,
        anon_pages=100,
        file_pages=50,
        shmem_pages=10,
        swap_pages=0,
        virtual_pages=1000,
        major_faults=3,
        minor_faults=97,
        oom_score_adj=0,
        regions=(
            AddressRange(0x400000, 0x401000),
            AddressRange(0x601000, 0x602000),
            AddressRange(0x603000, 0x624000),
            AddressRange(0x7FFD_0000, 0x7FFE_0000),
        ),
    )
    values.update(overrides)
    return ProcessSnapshot(**values)


@pytest.fixture
def snapshot() -> ProcessSnapshot:
    return make_snapshot()


@pytest.fixture
def threads() -> list[ThreadSnapshot]:
    return [
        ThreadSnapshot(
            tid=4242,
            name="worker",
            cpu_time_ns=500_000_000,
            start_time_ns=1_000_000_000,
            state=0,
            priority=120,
            nice=0,
            affinity=(True, True, True, True, True, True, True, True),
        ),
        ThreadSnapshot(
            tid=4243,
            name="io-thread",
            cpu_time_ns=0,
            start_time_ns=1_500_000_000,
            state=1,
            priority=125,
            nice=5,
            affinity=(True, False, True, False, True, False, True, False),
        ),
    ]


@pytest.fixture
def sockets() -> list[SocketHandle]:
    return [
        SocketHandle(
            family=2,
            type=1,
            state=1,
            local_address="10.0.0.5",
            local_port=43210,
            remote_address="10.0.0.9",
            remote_port=80,
            segments_in=10,
            segments_out=12,
            bytes_sent=2048,
            bytes_received=4096,
            retransmits=1,
            drops=0,
            ifindex=3,
            ifname="eth0",
        ),
        SocketHandle(
            family=2,
            type=2,
            local_address="10.0.0.5",
            local_port=5353,
            segments_in=99,
            bytes_received=99999,
            ifindex=3,
            ifname="eth0",
        ),
        SocketHandle(
            family=10,
            type=1,
            state=10,
            local_address="fd00::5",
            local_port=8443,
            segments_in=5,
            segments_out=5,
            bytes_sent=100,
            bytes_received=200,
            retransmits=2,
            drops=1,
            ifindex=5,
            ifname="eth1",
        ),
        SocketHandle(family=1, type=1),
    ]


@pytest.fixture
def provider(snapshot, threads, sockets) -> FakeProvider:
    return FakeProvider(
        snapshots={snapshot.pid: snapshot},
        threads={snapshot.pid: threads},
        sockets={snapshot.pid: sockets},
    )
