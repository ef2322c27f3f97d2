"""Text rendering primitives for pidscope reports."""

from collections.abc import Sequence

from pidscope.models import MemoryRegion

BANNER_WIDTH = 75
BAR_WIDTH = 50
AFFINITY_CPUS = 8

THREAD_HEADER = (
    f"{'TID':<8} {'NAME':<16} {'CPU(%)':>8} {'STATE':<6} {'PRIORITY':>8} "
    f"{'NICE':>5} CPU_AFFINITY"
)

_THREAD_STATE_CHARS = {
    0x0000: "R",  # running
    0x0001: "S",  # interruptible sleep
    0x0002: "D",  # uninterruptible sleep
    0x0004: "T",  # stopped
    0x0008: "t",  # traced
    0x0020: "Z",  # zombie
    0x0040: "X",  # dead
}


def banner(width: int = BANNER_WIDTH) -> str:
    return "-" * width


def section(title: str, width: int = BANNER_WIDTH) -> list[str]:
    """Return the banner/title/banner lines opening a report section."""
    return [banner(width), title, banner(width)]


def format_size(size: int) -> str:
    """Format a byte count as B, KB or MB using integer division."""
    if size >= 1024 * 1024:
        return f"{size // (1024 * 1024)} MB"
    if size >= 1024:
        return f"{size // 1024} KB"
    return f"{size} B"


def format_address(addr: int) -> str:
    return f"0x{addr:013x}"


def format_permyriad(value: int) -> str:
    """Render hundredths of a percent as a two-decimal percentage."""
    return f"{value // 100}.{value % 100:02d}"


def calculate_bar_width(region_size: int, total_size: int, bar_width: int = BAR_WIDTH) -> int:
    """Proportional bar width, at least 1 for any non-zero region."""
    if total_size == 0:
        return 0
    width = (region_size * bar_width) // total_size
    if region_size > 0 and width == 0:
        width = 1
    return width


def region_bar(region: MemoryRegion, width: int, bar_width: int = BAR_WIDTH) -> list[str]:
    """
    Render the visualization block of one region.

    Returns an empty list for absent or empty regions so they are left
    out of the visualization entirely.
    """
    if not region.exists or region.size == 0:
        return []
    width = min(width, bar_width)
    return [
        f"{region.name:<5} ({format_size(region.size)})",
        "      [" + "=" * width + " " * (bar_width - width) + "]",
        "",
    ]


def thread_state_char(state: int) -> str:
    """Map a raw kernel task state code to its display character."""
    return _THREAD_STATE_CHARS.get(state, "?")


def affinity_string(mask: Sequence[bool], max_cpus: int = AFFINITY_CPUS) -> str:
    """Comma-joined CPU numbers set in the first max_cpus bits, or 'none'."""
    cpus = [str(cpu) for cpu, allowed in enumerate(mask[:max_cpus]) if allowed]
    return ",".join(cpus) if cpus else "none"


def thread_line(
    tid: int,
    name: str,
    usage: int,
    state: str,
    priority: int,
    nice: int,
    affinity: str,
) -> str:
    """Render one row of the thread table (usage in permyriad)."""
    return (
        f"{tid:<8} {name[:16]:<16} {format_permyriad(usage):>8} {state:<6} "
        f"{priority:>8} {nice:>5} {affinity}"
    )


def format_endpoint(address: str | None, port: int | None) -> str:
    if not address:
        return "*"
    if ":" in address:
        address = f"[{address}]"
    return f"{address}:{port if port is not None else '*'}"


def socket_line(
    index: int,
    family: str,
    sock_type: str,
    state: str,
    endpoints: str | None,
    interface: str | None,
) -> str:
    """Render one socket detail row; endpoints only for IP families."""
    line = f"[{index}] {family:<10} {sock_type:<7} {state:<12}"
    if endpoints:
        line += f" {endpoints}"
    if interface:
        line += f" dev={interface}"
    return line.rstrip()
