"""Memory region classification.

The stack and image base are inferred heuristically from the ordered
region list, not read from the ELF headers of the binary.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from pidscope.metrics import address_in_range, bss_range, heap_range
from pidscope.models import AddressRange, MemoryRegion, ProcessSnapshot


@dataclass(slots=True, frozen=True)
class RegionLayout:
    """Named segments of a process and its inferred image base."""

    code: MemoryRegion
    data: MemoryRegion
    bss: MemoryRegion
    heap: MemoryRegion
    stack: MemoryRegion
    image_base: int

    @property
    def regions(self) -> tuple[MemoryRegion, ...]:
        """The five segments in address-space order."""
        return (self.code, self.data, self.bss, self.heap, self.stack)


def _bounded_region(name: str, start: int, end: int) -> MemoryRegion:
    if start >= end:
        return MemoryRegion(name, start, end, exists=False)
    return MemoryRegion(name, start, end, exists=True)


def stack_region(start_stack: int, regions: Sequence[AddressRange]) -> MemoryRegion:
    """
    Infer the stack from its declared top address.

    The stack grows downward, so the start of the region containing the
    top is taken as the lower bound. With no containing region the lower
    bound is 0 and the stack is reported as absent.
    """
    for region in regions:
        if address_in_range(start_stack, region.start, region.end):
            return MemoryRegion("STACK", region.start, start_stack, exists=True)
    return MemoryRegion("STACK", 0, start_stack, exists=False)


def image_base(regions: Sequence[AddressRange]) -> int:
    """Start of the first mapped region, where PIE binaries are loaded."""
    if not regions:
        return 0
    return regions[0].start


def classify_regions(snapshot: ProcessSnapshot) -> RegionLayout:
    """Derive code/data/BSS/heap/stack segments from a snapshot."""
    bss = bss_range(snapshot.end_data, snapshot.start_brk)
    heap = heap_range(snapshot.start_brk, snapshot.brk)
    return RegionLayout(
        code=_bounded_region("CODE", snapshot.start_code, snapshot.end_code),
        data=_bounded_region("DATA", snapshot.start_data, snapshot.end_data),
        bss=MemoryRegion("BSS", bss.start, bss.end, exists=bss.valid),
        heap=MemoryRegion("HEAP", heap.start, heap.end, exists=heap.valid),
        stack=stack_region(snapshot.start_stack, snapshot.regions),
        image_base=image_base(snapshot.regions),
    )
