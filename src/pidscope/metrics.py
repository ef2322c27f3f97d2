"""Pure metric primitives used by the report builders.

Every function here is total: degenerate input (zero elapsed time,
inverted ranges, empty totals) yields a neutral value instead of raising.
"""

from typing import NamedTuple

OOM_SCORE_ADJ_MIN = -1000
OOM_SCORE_ADJ_MAX = 1000

# Kernel priority of a nice-0 task (MAX_RT_PRIO + 20)
DEFAULT_PRIORITY = 120
NORMAL_PRIORITY_RANGE = range(100, 140)


class RangeResult(NamedTuple):
    """Start/end of a derived address range and whether it is valid."""

    start: int
    end: int
    valid: bool


def usage_permyriad(total_time: int, elapsed_time: int) -> int:
    """Return total_time / elapsed_time in hundredths of a percent.

    Returns 0 when no time has elapsed. Values above 10000 are legal, a
    multi-threaded process can consume more CPU time than wall time.
    """
    if elapsed_time <= 0:
        return 0
    return (10000 * total_time) // elapsed_time


def bss_range(end_data: int, start_brk: int) -> RangeResult:
    """Return the BSS range between end of data and start of the heap break.

    A zero-length range is valid and means the binary has no BSS.
    """
    if start_brk < end_data:
        return RangeResult(0, 0, False)
    return RangeResult(end_data, start_brk, True)


def heap_range(start_brk: int, brk: int) -> RangeResult:
    """Return the classic brk heap range.

    Only the contiguous brk heap is modeled. Allocator arenas and mmap
    based allocations are not part of this range.
    """
    if brk < start_brk:
        return RangeResult(0, 0, False)
    return RangeResult(start_brk, brk, True)


def address_in_range(addr: int, start: int, end: int) -> bool:
    """Check addr against the half-open range [start, end)."""
    if start > end:
        return False
    return start <= addr < end


def memory_usage_percent(used: int, total: int) -> int:
    """Return used as an integer percentage of total, unclamped."""
    if total == 0:
        return 0
    return (used * 100) // total


def is_high_memory_pressure(resident_kb: int, swap_kb: int) -> bool:
    """Swap above 10% of the resident size indicates memory pressure."""
    if resident_kb == 0:
        return swap_kb > 0
    return swap_kb * 10 > resident_kb


def is_valid_oom_adjustment(value: int) -> bool:
    """Check an oom_score_adj value against the kernel's accepted range."""
    return OOM_SCORE_ADJ_MIN <= value <= OOM_SCORE_ADJ_MAX


def rss_pages(anon_pages: int, file_pages: int, shmem_pages: int) -> int:
    """Resident set size in pages: anonymous + file-backed + shared."""
    return anon_pages + file_pages + shmem_pages


def pages_to_kb(pages: int, page_size: int = 4096) -> int:
    return pages * page_size // 1024


def total_faults(major_faults: int, minor_faults: int) -> int:
    return major_faults + minor_faults


def nice_from_priority(priority: int) -> int:
    """Derive the nice value from a kernel priority (120 is nice 0)."""
    return priority - DEFAULT_PRIORITY
