"""Top-down call tree with per-node counters and a source code view."""

from __future__ import annotations

from dataclasses import dataclass, field

from .helpers import format_bytes
from .model import MemInfo

ROOT_NAME = "all"

CodeRow = tuple[int, str, str]


@dataclass
class StackInfo:
    """Counters and source location of one call tree node."""

    id: int = 0
    name: str = ""
    file_name: str = ""
    line_number: int = 0
    peaked: int = 0
    leaked: int = 0
    allocations: int = 0
    temporary: int = 0


@dataclass
class StackNode:
    """A call tree node; children are keyed by function and call site."""

    info: StackInfo
    children: dict[str, StackNode] = field(default_factory=dict)

    def sorted_children(self) -> list[StackNode]:
        """Children in key order."""
        return [child for _, child in sorted(self.children.items())]


def make_stack_dirs(info: MemInfo) -> tuple[StackNode, dict[int, StackInfo]]:
    """Build the call tree of all recorded allocations.

    Returns the root node and every node's :class:`StackInfo` by id.
    A node's file and line are those of the call site in its parent.
    """
    data = info.data
    root_info = StackInfo(name=ROOT_NAME)
    root = StackNode(root_info)
    by_id = {root_info.id: root_info}

    def string(index: int) -> str:
        if not 1 <= index <= len(data.strings):
            raise IndexError(f"string index {index} out of range")
        return data.strings[index - 1]

    for alloc_info in data.allocation_infos:
        index = alloc_info.allocation_idx
        if not 0 <= index < len(data.allocations):
            raise IndexError(f"allocation index {index} out of range")
        allocation = data.allocations[index]
        counters = allocation.data

        current = root
        parent_file_idx, parent_ln = 0, 0
        for ip in reversed(list(data.trace_ips(allocation.trace_idx))):
            for frame in (*ip.inlined, ip.frame):
                key = f"{frame.function_idx}:{parent_file_idx}:{parent_ln}"
                child = current.children.get(key)
                if child is None:
                    node_info = StackInfo(
                        id=len(by_id),
                        name=string(frame.function_idx),
                        file_name=string(parent_file_idx) if parent_file_idx else "",
                        line_number=parent_ln,
                    )
                    by_id[node_info.id] = node_info
                    child = current.children[key] = StackNode(node_info)

                child.info.peaked += counters.peak
                child.info.leaked += counters.leaked
                child.info.allocations += counters.allocations
                child.info.temporary += counters.temporary

                parent_file_idx = frame.file_idx or 0
                parent_ln = frame.line_number or 0
                current = child
    return root, by_id


def _split_lines(code: str) -> list[str]:
    if not code:
        return []
    lines = code.split("\n")
    if code.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class CodeLoader:
    """Reads source files on demand and keeps them cached."""

    def __init__(self) -> None:
        self._files: dict[str, list[str]] = {}

    def _load(self, file_name: str) -> list[str] | None:
        if file_name not in self._files:
            try:
                with open(file_name, encoding="utf-8", newline="") as source:
                    code = source.read()
            except (OSError, UnicodeDecodeError, ValueError):
                return None
            self._files[file_name] = _split_lines(code)
        return self._files[file_name]

    def snippet(self, stack_info: StackInfo, offset: int) -> list[CodeRow]:
        """Source lines around the node's line as ``(number, text, note)`` rows.

        About ``offset`` lines are shown, centred on the node's line, whose
        note carries the node's counters. An unreadable file gives no rows.
        """
        lines = self._load(stack_info.file_name)
        if lines is None:
            return []
        half = offset // 2
        low = max(stack_info.line_number - half, 0)
        high = stack_info.line_number + half

        rows = []
        for number, text in enumerate(lines, start=1):
            if number > high:
                break
            if number < low:
                continue
            note = ""
            if number == stack_info.line_number:
                note = (
                    f"⬅ Peak: {format_bytes(stack_info.peaked)}, "
                    f"Leaked: {format_bytes(stack_info.leaked)}"
                )
                if stack_info.allocations > 1:
                    note += f" (x{stack_info.allocations})"
            rows.append((number, text, note))
        return rows


class TopDown:
    """The top-down view: a call tree with one selected node."""

    def __init__(self, info: MemInfo) -> None:
        self.root, self.stack_info_by_id = make_stack_dirs(info)
        self.selected_id = self.root.info.id
        self.code_loader = CodeLoader()

    def select(self, node_id: int) -> None:
        """Select the node with ``node_id``."""
        if node_id not in self.stack_info_by_id:
            raise KeyError(f"no stack node with id {node_id}")
        self.selected_id = node_id

    def selected(self) -> StackInfo:
        """Information on the selected node."""
        return self.stack_info_by_id[self.selected_id]

    def code_view(self, offset: int) -> list[CodeRow]:
        """Source rows around the selected node's call site."""
        return self.code_loader.snippet(self.selected(), offset)

    def render_tree(self) -> str:
        """The call tree as indented text, one ``name [id]`` per line."""
        lines = []
        pending = [(self.root, 0)]
        while pending:
            node, depth = pending.pop()
            marker = "*" if node.info.id == self.selected_id else " "
            lines.append(f"{marker}{'  ' * depth}{node.info.name} [{node.info.id}]")
            pending.extend((child, depth + 1) for child in reversed(node.sorted_children()))
        return "\n".join(lines)