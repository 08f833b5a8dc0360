import pytest

from memtrace_ui.helpers import format_bytes
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
from memtrace_ui.topdown import CodeLoader, StackInfo, TopDown, make_stack_dirs

PEAK_A, LEAK_A, CALLS_A, TMP_A = 100, 5, 2, 1
PEAK_B, LEAK_B, CALLS_B, TMP_B = 50, 0, 1, 0
FILE_NAME = "src/main.rs"
MAIN_LINE, A_LINE = 10, 20


def make_info() -> MemInfo:
    data = AccumulatedData(
        strings=["main", "alloc_a", FILE_NAME, "alloc_b"],
        instruction_pointers=[
            InstructionPointer(frame=Frame(1, 3, MAIN_LINE)),
            InstructionPointer(frame=Frame(2, 3, A_LINE)),
            InstructionPointer(frame=Frame(4)),
        ],
        traces=[Trace(1, 0), Trace(2, 1), Trace(3, 1)],
        allocations=[
            Allocation(2, AllocationData(CALLS_A, TMP_A, LEAK_A, PEAK_A)),
            Allocation(3, AllocationData(CALLS_B, TMP_B, LEAK_B, PEAK_B)),
        ],
        allocation_infos=[AllocationInfo(0), AllocationInfo(1), AllocationInfo(0)],
    )
    return MemInfo(app_name="demo", data=data)


def test_tree_shape_and_ids():
    root, by_id = make_stack_dirs(make_info())
    assert root.info.name == "all"
    assert [child.info.name for child in root.sorted_children()] == ["main"]
    main = root.sorted_children()[0]
    assert [child.info.name for child in main.sorted_children()] == ["alloc_a", "alloc_b"]
    assert sorted(by_id) == list(range(len(by_id)))
    assert all(by_id[i].id == i for i in by_id)


def test_counters_accumulate():
    root, _ = make_stack_dirs(make_info())
    main = root.sorted_children()[0]
    alloc_a, alloc_b = main.sorted_children()
    assert alloc_a.info.peaked == 2 * PEAK_A
    assert alloc_a.info.allocations == 2 * CALLS_A
    assert alloc_b.info.leaked == LEAK_B
    assert main.info.peaked == alloc_a.info.peaked + alloc_b.info.peaked
    assert main.info.temporary == alloc_a.info.temporary + alloc_b.info.temporary
    assert root.info.peaked == 0


def test_call_site_comes_from_parent():
    root, _ = make_stack_dirs(make_info())
    main = root.sorted_children()[0]
    assert main.info.file_name == ""
    assert main.info.line_number == 0
    for child in main.sorted_children():
        assert child.info.file_name == FILE_NAME
        assert child.info.line_number == MAIN_LINE


def test_bad_allocation_index():
    info = make_info()
    info.data.allocation_infos.append(AllocationInfo(7))
    with pytest.raises(IndexError):
        make_stack_dirs(info)


def test_snippet_window_and_note(tmp_path):
    path = tmp_path / "code.rs"
    path.write_text("".join(f"line {n}\n" for n in range(1, 11)), encoding="utf-8")
    info = StackInfo(file_name=str(path), line_number=5, peaked=2048, leaked=0, allocations=3)
    rows = CodeLoader().snippet(info, 4)
    assert [row[0] for row in rows] == list(range(3, 8))
    assert [row[1] for row in rows] == [f"line {n}" for n in range(3, 8)]
    notes = {row[0]: row[2] for row in rows}
    assert notes[5] == f"⬅ Peak: {format_bytes(2048)}, Leaked: {format_bytes(0)} (x3)"
    assert all(notes[n] == "" for n in notes if n != 5)


def test_snippet_single_allocation_has_no_count(tmp_path):
    path = tmp_path / "code.rs"
    path.write_text("a\nb\n", encoding="utf-8")
    rows = CodeLoader().snippet(StackInfo(file_name=str(path), line_number=1, allocations=1), 10)
    assert [row[0] for row in rows] == [1, 2]
    assert "(x" not in rows[0][2]


def test_snippet_crlf_and_cache(tmp_path):
    path = tmp_path / "code.rs"
    path.write_bytes(b"a\r\nb\r\n")
    loader = CodeLoader()
    info = StackInfo(file_name=str(path), line_number=1)
    first = loader.snippet(info, 4)
    path.unlink()
    assert [row[1] for row in first] == ["a", "b"]
    assert loader.snippet(info, 4) == first


def test_snippet_missing_file(tmp_path):
    info = StackInfo(file_name=str(tmp_path / "missing.rs"), line_number=1)
    assert CodeLoader().snippet(info, 4) == []
    assert CodeLoader().snippet(StackInfo(), 4) == []


def test_topdown_selection():
    view = TopDown(make_info())
    assert view.selected().name == "all"
    assert view.code_view(10) == []
    target = next(i for i, s in view.stack_info_by_id.items() if s.name == "alloc_b")
    view.select(target)
    assert view.selected().name == "alloc_b"
    with pytest.raises(KeyError):
        view.select(len(view.stack_info_by_id))