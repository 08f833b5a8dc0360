"""Flame graph page: folded stack lines per memory metric."""

from __future__ import annotations

import enum
from collections.abc import Callable

from .model import AccumulatedData, Allocation, InstructionPointer, MemInfo
from .stackframes import FrameBox, Flamegraph, Options, _format_float

FRAME_HEIGHT = 20.0


class MemoryKind(enum.Enum):
    """Which allocation counter the flame graph shows."""

    PEAK = "Peak"
    ALLOCATIONS = "Allocations"
    TEMPORARY = "Temporary"
    LEAKED = "Leaked"

    def __str__(self) -> str:
        return self.value


_METRICS: dict[MemoryKind, Callable[[Allocation], float]] = {
    MemoryKind.PEAK: lambda a: a.data.peak,
    MemoryKind.TEMPORARY: lambda a: a.data.temporary,
    MemoryKind.ALLOCATIONS: lambda a: a.data.allocations,
    MemoryKind.LEAKED: lambda a: a.data.leaked,
}

_UNITS = {
    MemoryKind.PEAK: "bytes",
    MemoryKind.LEAKED: "bytes",
    MemoryKind.TEMPORARY: "",
    MemoryKind.ALLOCATIONS: "",
}


def get_frames_from_ip_info(data: AccumulatedData, ip_info: InstructionPointer) -> list[str]:
    """Function names of an instruction pointer's frame followed by its inlined frames."""
    names = []
    for frame in (ip_info.frame, *ip_info.inlined):
        index = frame.function_idx
        if not 1 <= index <= len(data.strings):
            raise IndexError(f"string index {index} out of range")
        names.append(data.strings[index - 1])
    return names


def make_frame_lines(info: MemInfo, metric: Callable[[Allocation], float]) -> list[str]:
    """One ``"outer;...;inner value"`` line per recorded allocation."""
    data = info.data
    lines = []
    for alloc_info in data.allocation_infos:
        index = alloc_info.allocation_idx
        if not 0 <= index < len(data.allocations):
            raise IndexError(f"allocation index {index} out of range")
        allocation = data.allocations[index]
        frames = [
            name
            for ip in data.trace_ips(allocation.trace_idx)
            for name in get_frames_from_ip_info(data, ip)
        ]
        stack = ";".join(reversed(frames))
        lines.append(f"{stack} {_format_float(float(metric(allocation)))}")
    return lines


class FlamegraphPage:
    """The flame graph view with a choice of memory metric."""

    def __init__(self, info: MemInfo) -> None:
        self.flamegraph = Flamegraph(Options(frame_height=FRAME_HEIGHT))
        self.memory_kind = MemoryKind.PEAK
        self._lines = {kind: make_frame_lines(info, metric) for kind, metric in _METRICS.items()}

    def select(self, kind: MemoryKind) -> None:
        """Switch the metric; the graph's selection is cleared on a change."""
        if kind != self.memory_kind:
            self.flamegraph.reset()
        self.memory_kind = kind

    def lines(self) -> list[str]:
        """Folded stack lines of the current metric."""
        return list(self._lines[self.memory_kind])

    def unit(self) -> str:
        """Unit label of the current metric."""
        return _UNITS[self.memory_kind]

    def layout(self, min_x: float, max_x: float) -> list[FrameBox]:
        """Lay out the current metric's flame graph."""
        return self.flamegraph.layout(self._lines[self.memory_kind], min_x, max_x)