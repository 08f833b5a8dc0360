# memtrace-ui

Views of where a program's heap memory went. Given the accumulated data
of a heap trace (allocation sites, call-stack traces, instruction
pointers and an interned string table), the package builds three views
as plain data and plain text:

- **Overview**: a summary of the run (application, total runtime, total
  system memory, calls to allocation functions, temporary allocations,
  peak heap memory, peak RSS, memory leaked) and four ranked tables
  grouped by allocating function: peak contributions, largest leaks,
  most allocations and most temporary allocations.
- **Top-down tree**: every call path merged into one tree rooted at
  `all`. Each node carries its peak, leaked, allocation and temporary
  totals and the file and line of its call site, and the source lines
  around that call site can be shown.
- **Flamegraph**: folded stack lines (`outer;...;inner value`) for each
  memory kind (peak, temporary, leaked, allocations), laid out as frame
  boxes with positions, colours and labels, with hover text for an info
  bar and click-to-focus on the call chains through a frame.

The package uses only the standard library.

## Modules

| Module | What it holds |
| --- | --- |
| `memtrace_ui.model` | Trace data: `Frame`, `InstructionPointer`, `Trace`, `AllocationData`, `Allocation`, `AllocationInfo`, `AccumulatedData`, `MemInfo` |
| `memtrace_ui.helpers` | `format_bytes` (binary units, e.g. `1.5 KiB`) and `key_value` (`key: value` lines) |
| `memtrace_ui.overview` | `summary`, `render` and `make_top_peaks`, `make_top_leaks`, `make_top_allocations`, `make_top_tmp_allocations` |
| `memtrace_ui.topdown` | `make_stack_dirs`, `StackInfo`, `StackNode`, `CodeLoader`, `TopDown` |
| `memtrace_ui.stackframes` | `build_stackframes`, `make_frame_color`, `saturate`, `Options`, `StackFrame`, `FrameBox`, `Flamegraph` |
| `memtrace_ui.flamegraph_page` | `make_frame_lines`, `get_frames_from_ip_info`, `MemoryKind`, `FlamegraphPage` |
| `memtrace_ui.app` | `MainTab` and `MemgraphApp`, which holds all three views and renders the current tab |

## Usage

Build an `AccumulatedData`, wrap it in a `MemInfo` with the application's
name, and ask for the view you want. Indexes into `strings`, `traces` and
`instruction_pointers` are one-based; `allocation_idx` is zero-based.

```python
from memtrace_ui.model import (
    AccumulatedData, Allocation, AllocationData, AllocationInfo,
    Frame, InstructionPointer, MemInfo, Trace,
)

data = AccumulatedData(
    strings=["main", "alloc", "main.c"],
    instruction_pointers=[
        InstructionPointer(Frame(1, file_idx=3, line_number=10)),
        InstructionPointer(Frame(2)),
    ],
    traces=[Trace(ip_idx=1), Trace(ip_idx=2, parent_idx=1)],
    allocations=[Allocation(trace_idx=2, data=AllocationData(allocations=3, peak=2048))],
    allocation_infos=[AllocationInfo(allocation_idx=0)],
)
info = MemInfo(app_name="demo", data=data)
```

Overview:

```python
from memtrace_ui.overview import render, summary, make_top_peaks

print(render(info))          # summary lines and the four ranked tables
summary(info)                # [("application", "demo"), ...]
make_top_peaks(info.data)    # [(function name, formatted size), ...]
```

Top-down tree:

```python
from memtrace_ui.topdown import TopDown

tree = TopDown(info)
print(tree.render_tree())    # indented "name [id]" lines, "*" marks the selection
tree.select(2)               # select a node by id; unknown ids raise KeyError
tree.selected()              # the selected node's StackInfo
tree.code_view(20)           # [(line number, text, note), ...] around the call site
```

`code_view` reads the call site's source file and caches it; a file that
cannot be read gives no rows. The note on the call-site line holds the
node's peak and leaked sizes and, for more than one allocation, its count.

Flamegraph:

```python
from memtrace_ui.flamegraph_page import FlamegraphPage, MemoryKind

page = FlamegraphPage(info)
page.lines()                       # ["main;alloc 2048"]
page.select(MemoryKind.LEAKED)     # switching kind clears the graph's selection
page.unit()                        # "bytes" for peak and leaked, "" otherwise
boxes = page.layout(0.0, 1000.0)   # FrameBox list, root first

fg = page.flamegraph
fg.hover(boxes[1], boxes[0].value, page.unit())  # sets the info bar, returns highlight colour
fg.click(boxes[1])                 # focus on the chains through this frame
fg.info_bar()                      # "Function: ..."
fg.reset()
```

Folded lines can also be fed straight to the tree builder:

```python
from memtrace_ui.stackframes import build_stackframes

root, max_depth = build_stackframes(["main;parse;alloc 64", "main;run 32"])
```

All views together:

```python
from memtrace_ui.app import MemgraphApp, MainTab

app = MemgraphApp(info)
app.select_tab(MainTab.FLAMEGRAPH)
print(app.render())          # tab bar followed by the current tab as text
```

## What the package does not do

- It does not read trace files: `AccumulatedData` has to be filled in by
  the caller.
- It does not run or trace a program, and it has no command-line entry
  point.
- It opens no window and draws nothing: the views are returned as data
  (frame boxes with coordinates and RGB colours, rows, tables) and as
  plain text, for a front end of your choice to display.

## Tests

The test suite uses pytest and is installed with the `test` extra:

```
pip install -e .[test]
pytest
```