"""The application: tabs over the overview, top-down and flame graph views."""

from __future__ import annotations

import enum

from . import overview
from .flamegraph_page import FlamegraphPage
from .model import MemInfo
from .topdown import TopDown

WINDOW_WIDTH = 1024.0
CODE_VIEW_LINES = 40


class MainTab(enum.Enum):
    """The application's tabs, in display order."""

    OVERVIEW = "Overview"
    TOPDOWN = "TopDown"
    FLAMEGRAPH = "Flamegraph"

    def __str__(self) -> str:
        return self.value


class MemgraphApp:
    """Holds every view of one trace and the current tab."""

    def __init__(self, info: MemInfo) -> None:
        self.info = info
        self.current_tab = MainTab.OVERVIEW
        self.fg_page = FlamegraphPage(info)
        self.top_down = TopDown(info)

    def select_tab(self, tab: MainTab) -> None:
        """Switch to ``tab``."""
        self.current_tab = MainTab(tab)

    def _tab_bar(self) -> str:
        return " ".join(
            f"[{tab}]" if tab is self.current_tab else f" {tab} " for tab in MainTab
        )

    def _render_top_down(self) -> str:
        lines = [self.top_down.render_tree(), ""]
        for number, text, note in self.top_down.code_view(CODE_VIEW_LINES):
            row = f"{number:>5}  {text}"
            lines.append(f"{row}  {note}" if note else row)
        return "\n".join(lines)

    def _render_flamegraph(self) -> str:
        page = self.fg_page
        boxes = page.layout(0.0, WINDOW_WIDTH)
        top = boxes[0].depth
        lines = [f"Memory: {page.memory_kind}", ""]
        lines.extend(f"{'  ' * (top - box.depth)}{box.text}" for box in boxes)
        lines.extend(["", page.flamegraph.info_bar()])
        return "\n".join(lines)

    def render(self) -> str:
        """The current tab as plain text, under the tab bar."""
        if self.current_tab is MainTab.OVERVIEW:
            body = overview.render(self.info)
        elif self.current_tab is MainTab.TOPDOWN:
            body = self._render_top_down()
        else:
            body = self._render_flamegraph()
        bar = self._tab_bar()
        return "\n".join([bar, "-" * len(bar), body])