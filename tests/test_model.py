from datetime import timedelta

import pytest

from memtrace_ui.model import (
    AccumulatedData,
    Allocation,
    AllocationData,
    AllocationInfo,
    Frame,
    InstructionPointer,
    MemInfo,
    Trace,
)


@pytest.fixture
def data():
    ips = [
        InstructionPointer(frame=Frame(1)),
        InstructionPointer(frame=Frame(2, 3, 10), inlined=[Frame(1)]),
        InstructionPointer(frame=Frame(2)),
    ]
    traces = [Trace(ip_idx=1), Trace(ip_idx=2, parent_idx=1), Trace(ip_idx=3, parent_idx=2)]
    return AccumulatedData(
        strings=["main", "foo", "main.rs"],
        traces=traces,
        instruction_pointers=ips,
        allocations=[Allocation(trace_idx=3, data=AllocationData(allocations=2, peak=16))],
        allocation_infos=[AllocationInfo(allocation_idx=0, size=16)],
    )


def test_single_frame_has_no_location():
    frame = Frame(4)
    assert frame.is_multiple() is False
    assert frame.file_idx is None


def test_multiple_frame_has_location():
    frame = Frame(4, 2, 17)
    assert frame.is_multiple() is True
    assert (frame.file_idx, frame.line_number) == (2, 17)


@pytest.mark.parametrize("file_idx, line", [(2, None), (None, 5)])
def test_partial_location_rejected(file_idx, line):
    with pytest.raises(ValueError):
        Frame(1, file_idx, line)


def test_trace_ips_walks_to_root(data):
    ips = list(data.trace_ips(3))
    assert ips == [
        data.instruction_pointers[2],
        data.instruction_pointers[1],
        data.instruction_pointers[0],
    ]


def test_trace_ips_of_inner_trace(data):
    assert [ip.frame for ip in data.trace_ips(2)] == [Frame(2, 3, 10), Frame(1)]


def test_trace_ips_zero_is_empty(data):
    assert list(data.trace_ips(0)) == []


def test_trace_ips_bad_trace_index(data):
    with pytest.raises(IndexError):
        list(data.trace_ips(9))


def test_trace_ips_bad_ip_index():
    bad = AccumulatedData(traces=[Trace(ip_idx=0)])
    with pytest.raises(IndexError):
        list(bad.trace_ips(1))


def test_trace_ips_cycle_detected():
    looped = AccumulatedData(
        traces=[Trace(ip_idx=1, parent_idx=2), Trace(ip_idx=1, parent_idx=1)],
        instruction_pointers=[InstructionPointer(frame=Frame(1))],
    )
    with pytest.raises(ValueError):
        list(looped.trace_ips(1))


def test_defaults_are_empty():
    empty = AccumulatedData()
    assert empty.total == AllocationData(0, 0, 0, 0)
    assert empty.duration == timedelta(0)
    assert empty.strings == [] and empty.allocations == []


def test_default_lists_not_shared():
    first = AccumulatedData()
    second = AccumulatedData()
    first.strings.append("x")
    assert second.strings == []


def test_meminfo_holds_data(data):
    info = MemInfo(app_name="demo", data=data)
    assert info.app_name == "demo"
    assert info.data.allocations[0].data.peak == 16