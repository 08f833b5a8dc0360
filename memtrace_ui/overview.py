"""Overview page: headline numbers and top contributors."""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta

from .helpers import format_bytes, key_value
from .model import AccumulatedData, AllocationData, MemInfo


def _item(items: list, index: int, what: str):
    if not 0 <= index < len(items):
        raise IndexError(f"{what} index {index} out of range")
    return items[index]


def _contributions(
    data: AccumulatedData,
    metric: Callable[[AllocationData], int],
    fmt: Callable[[int], str],
) -> list[tuple[str, str]]:
    totals: dict[str, int] = {}
    for allocation in data.allocations:
        trace = _item(data.traces, allocation.trace_idx - 1, "trace")
        ip = _item(data.instruction_pointers, trace.ip_idx - 1, "instruction pointer")
        name = _item(data.strings, ip.frame.function_idx, "string")
        totals[name] = totals.get(name, 0) + metric(allocation.data)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [(name, fmt(total)) for name, total in ranked]


def make_top_peaks(data: AccumulatedData) -> list[tuple[str, str]]:
    """Peak memory per function, largest first."""
    return _contributions(data, lambda d: d.peak, format_bytes)


def make_top_leaks(data: AccumulatedData) -> list[tuple[str, str]]:
    """Leaked memory per function, largest first."""
    return _contributions(data, lambda d: d.leaked, format_bytes)


def make_top_allocations(data: AccumulatedData) -> list[tuple[str, str]]:
    """Allocation calls per function, most first."""
    return _contributions(data, lambda d: d.allocations, str)


def make_top_tmp_allocations(data: AccumulatedData) -> list[tuple[str, str]]:
    """Temporary allocations per function, most first."""
    return _contributions(data, lambda d: d.temporary, str)


def _format_duration(duration: timedelta) -> str:
    if duration < timedelta(0):
        raise ValueError("duration cannot be negative")
    nanos = (duration // timedelta(microseconds=1)) * 1000
    secs, sub = divmod(nanos, 1_000_000_000)
    if secs:
        return _with_fraction(secs, sub, 9, "s")
    if sub >= 1_000_000:
        whole, rest = divmod(sub, 1_000_000)
        return _with_fraction(whole, rest, 6, "ms")
    if sub >= 1_000:
        whole, rest = divmod(sub, 1_000)
        return _with_fraction(whole, rest, 3, "µs")
    return f"{sub}ns"


def _with_fraction(whole: int, rest: int, width: int, suffix: str) -> str:
    fraction = f"{rest:0{width}d}".rstrip("0")
    return f"{whole}.{fraction}{suffix}" if fraction else f"{whole}{suffix}"


def summary(info: MemInfo) -> list[tuple[str, str]]:
    """Headline figures of a trace as ``(key, value)`` pairs."""
    data = info.data
    return [
        ("application", info.app_name),
        ("total runtime", _format_duration(data.duration)),
        ("total system memory", format_bytes(data.page_size * data.pages)),
        ("calls to allocation functions", str(data.total.allocations)),
        ("temporary allocations", str(data.total.temporary)),
        ("peak heap memory consumption", format_bytes(data.total.peak)),
        ("peak RSS", format_bytes(data.peak_rss)),
        ("total memory leaked", format_bytes(data.total.leaked)),
    ]


_TABLES = (
    ("Peak Contributions", ("Location", "Peak"), make_top_peaks),
    ("Largest Memory Leaks", ("Location", "Leaked"), make_top_leaks),
    ("Most Memory Allocations", ("Location", "Allocations"), make_top_allocations),
    ("Most Temporary Allocations", ("Location", "Temporary"), make_top_tmp_allocations),
)


def _table(title: str, headers: tuple[str, str], rows: list[tuple[str, str]]) -> list[str]:
    width = max(len(cell) for cell in [headers[0], *(row[0] for row in rows)])
    lines = [title, f"{headers[0].ljust(width)}  {headers[1]}"]
    lines.extend(f"{location.ljust(width)}  {value}" for location, value in rows)
    return lines


def render(info: MemInfo) -> str:
    """The overview page as plain text."""
    lines = [key_value(key, value) for key, value in summary(info)]
    for title, headers, build in _TABLES:
        lines.append("")
        lines.extend(_table(title, headers, build(info.data)))
    return "\n".join(lines)