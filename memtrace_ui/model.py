"""Data model of a parsed heap trace."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import timedelta


@dataclass(frozen=True)
class Frame:
    """A resolved stack frame.

    ``function_idx`` and ``file_idx`` are one-based indexes into
    :attr:`AccumulatedData.strings`. A frame without a file and a line
    carries only its function.
    """

    function_idx: int
    file_idx: int | None = None
    line_number: int | None = None

    def __post_init__(self) -> None:
        if (self.file_idx is None) != (self.line_number is None):
            raise ValueError("a frame needs both a file and a line number, or neither")

    def is_multiple(self) -> bool:
        """Whether the frame carries a source location."""
        return self.file_idx is not None


@dataclass
class InstructionPointer:
    """An instruction pointer with its frame and the frames inlined into it."""

    frame: Frame
    inlined: list[Frame] = field(default_factory=list)
    ip: int = 0
    module_idx: int = 0


@dataclass(frozen=True)
class Trace:
    """One link of a backtrace; ``parent_idx`` is zero at the outermost frame."""

    ip_idx: int
    parent_idx: int = 0


@dataclass
class AllocationData:
    """Counters collected for one allocation site."""

    allocations: int = 0
    temporary: int = 0
    leaked: int = 0
    peak: int = 0


@dataclass
class Allocation:
    """An allocation site: a backtrace and its counters."""

    trace_idx: int
    data: AllocationData = field(default_factory=AllocationData)


@dataclass(frozen=True)
class AllocationInfo:
    """A recorded allocation referring to an :class:`Allocation` by index."""

    allocation_idx: int
    size: int = 0


@dataclass
class AccumulatedData:
    """Everything accumulated from a trace file."""

    strings: list[str] = field(default_factory=list)
    traces: list[Trace] = field(default_factory=list)
    instruction_pointers: list[InstructionPointer] = field(default_factory=list)
    allocation_infos: list[AllocationInfo] = field(default_factory=list)
    allocations: list[Allocation] = field(default_factory=list)
    total: AllocationData = field(default_factory=AllocationData)
    duration: timedelta = field(default_factory=timedelta)
    peak_rss: int = 0
    page_size: int = 0
    pages: int = 0

    def trace_ips(self, trace_idx: int) -> Iterator[InstructionPointer]:
        """Yield the instruction pointers of a backtrace, innermost first.

        ``trace_idx`` is one-based; zero denotes an empty backtrace.
        """
        remaining = len(self.traces)
        while trace_idx != 0:
            if remaining == 0:
                raise ValueError("backtrace contains a cycle")
            remaining -= 1
            trace = self._lookup(self.traces, trace_idx, "trace")
            yield self._lookup(self.instruction_pointers, trace.ip_idx, "instruction pointer")
            trace_idx = trace.parent_idx

    @staticmethod
    def _lookup(items: list, index: int, what: str):
        if not 1 <= index <= len(items):
            raise IndexError(f"{what} index {index} out of range")
        return items[index - 1]


@dataclass
class MemInfo:
    """A traced application's name together with its trace data."""

    app_name: str
    data: AccumulatedData