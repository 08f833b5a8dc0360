"""Flame graph model: stack frame trees, layout, colouring and the info bar."""

from __future__ import annotations

import colorsys
import math
import struct
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from decimal import Decimal

FRAME_V_SPACING = 4.0
FRAME_H_SPACING = 4.0
INFO_BAR_HEIGHT = 35.0
TEXT_HEIGHT = 15.0
HIGHLIGHT_FACTOR = 0.3
INFO_BAR_COLOR = (224, 255, 230)

Color = tuple[int, int, int]


@dataclass(frozen=True)
class Options:
    """Flame graph drawing options."""

    frame_height: float = 20.0


@dataclass
class StackFrame:
    """A node of the flame graph tree."""

    label: str = ""
    value: float = 0.0
    chain_ids: set[int] = field(default_factory=set)
    children: dict[str, StackFrame] = field(default_factory=dict)


@dataclass(frozen=True)
class FrameBox:
    """A laid-out flame graph frame."""

    label: str
    value: float
    depth: int
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    chain_ids: frozenset[int]
    color: Color
    text: str


def _format_float(value: float) -> str:
    """Shortest decimal form, without exponent and without a trailing '.0'."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _format_fixed(value: float, digits: int = 2) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return f"{value:.{digits}f}"


def _divide(numerator: float, denominator: float) -> float:
    if denominator != 0:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _parse_value(raw: str) -> float:
    if raw != raw.strip() or "_" in raw or not raw:
        raise ValueError(f"invalid frame value: {raw!r}")
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"invalid frame value: {raw!r}") from None


def build_stackframes(chains: Iterable[str]) -> tuple[StackFrame, int]:
    """Build the frame tree from ``"f1;f2;...;fn value"`` lines.

    Returns the root frame and the depth of the deepest child level.
    The last frame of each chain names the node reached before it.
    """
    root = StackFrame(label="all")
    max_depth = 0
    for chain_id, chain in enumerate(chains):
        frames, sep, raw = chain.rpartition(" ")
        if not sep:
            raise ValueError(f"chain has no value: {chain!r}")
        value = _parse_value(raw)

        root.chain_ids.add(chain_id)
        root.value += value

        node, depth = root, 1
        while True:
            frame, sep, rest = frames.partition(";")
            if not sep:
                node.label = frames
                break
            max_depth = max(max_depth, depth)
            child = node.children.get(frame)
            if child is None:
                child = node.children[frame] = StackFrame(label=frame)
            child.chain_ids.add(chain_id)
            child.value += value
            node, frames, depth = child, rest, depth + 1
    return root, max_depth


_MASK64 = (1 << 64) - 1


def _rotl(x: int, bits: int) -> int:
    return ((x << bits) | (x >> (64 - bits))) & _MASK64


def _sipround(v0: int, v1: int, v2: int, v3: int) -> tuple[int, int, int, int]:
    v0 = (v0 + v1) & _MASK64
    v1 = _rotl(v1, 13) ^ v0
    v0 = _rotl(v0, 32)
    v2 = (v2 + v3) & _MASK64
    v3 = _rotl(v3, 16) ^ v2
    v0 = (v0 + v3) & _MASK64
    v3 = _rotl(v3, 21) ^ v0
    v2 = (v2 + v1) & _MASK64
    v1 = _rotl(v1, 17) ^ v2
    v2 = _rotl(v2, 32)
    return v0, v1, v2, v3


def _siphash13(data: bytes, k0: int = 0, k1: int = 0) -> int:
    v = (
        k0 ^ 0x736F6D6570736575,
        k1 ^ 0x646F72616E646F6D,
        k0 ^ 0x6C7967656E657261,
        k1 ^ 0x7465646279746573,
    )
    tail = len(data) % 8
    body = data[: len(data) - tail]
    for (m,) in struct.iter_unpack("<Q", body):
        v = _sipround(v[0], v[1], v[2], v[3] ^ m)
        v = (v[0] ^ m, v[1], v[2], v[3])
    last = ((len(data) & 0xFF) << 56) | int.from_bytes(data[len(body):], "little")
    v = _sipround(v[0], v[1], v[2], v[3] ^ last)
    v = (v[0] ^ last, v[1], v[2] ^ 0xFF, v[3])
    for _ in range(3):
        v = _sipround(*v)
    return v[0] ^ v[1] ^ v[2] ^ v[3]


def _clamp(x: float) -> float:
    return min(max(x, 0.0), 1.0)


def _gamma_u8(linear: float) -> int:
    if linear <= 0.0:
        return 0
    if linear <= 0.0031308:
        return int(3294.6 * linear + 0.5)
    if linear <= 1.0:
        return int(269.025 * linear ** (1.0 / 2.4) - 14.025 + 0.5)
    return 255


def _linear(gamma: int) -> float:
    if gamma <= 10:
        return gamma / 3294.6
    return ((gamma + 14.025) / 269.025) ** 2.4


def _color_from_hsv(h: float, s: float, v: float) -> Color:
    r, g, b = colorsys.hsv_to_rgb(h, s, v)
    return _gamma_u8(r), _gamma_u8(g), _gamma_u8(b)


def make_frame_color(value: float, depth: int, min_x: float, max_x: float) -> Color:
    """A stable greenish colour derived from a frame's value and position."""
    digest = _siphash13(struct.pack("<dIff", value, depth, min_x, max_x))

    hue_variation = 0.3 + ((digest & 0xFF) / 255.0) * 0.7
    sat_variation = 0.4 + (((digest >> 8) & 0x7F) / 127.0) * 0.2
    val_variation = ((digest >> 16) & 0x7F) / 255.0

    hue = (100.0 + hue_variation * 60.0) / 360.0
    saturation = 0.6 + sat_variation * 0.4
    brightness = 0.6 + val_variation * 0.3
    return _color_from_hsv(hue, _clamp(saturation), _clamp(brightness))


def saturate(color: Color, factor: float) -> Color:
    """Raise saturation and lower brightness of ``color`` by ``factor``."""
    h, s, v = colorsys.rgb_to_hsv(*(_linear(c) for c in color))
    return _color_from_hsv(h, _clamp(s * (1.0 + factor)), _clamp(v * (1.0 - factor)))


class Flamegraph:
    """Flame graph state: the selected chains and the info bar text."""

    def __init__(self, options: Options) -> None:
        self.options = options
        self.selected_chain_ids: frozenset[int] | None = None
        self.info_bar_text = ""

    def layout(self, chains: Iterable[str], min_x: float, max_x: float) -> list[FrameBox]:
        """Lay out the frames of ``chains`` between ``min_x`` and ``max_x``.

        Boxes come in drawing order; the first one is the root.
        """
        root, max_depth = build_stackframes(chains)
        boxes = []
        pending = [(root, max_depth, min_x, max_x)]
        while pending:
            frame, depth, lo, hi = pending.pop()
            boxes.append(self._frame_box(frame, depth, lo, hi))
            pending.extend(reversed(list(self._child_spans(frame, depth, lo, hi))))
        return boxes

    def _frame_box(self, frame: StackFrame, depth: int, min_x: float, max_x: float) -> FrameBox:
        height = self.options.frame_height
        min_y = depth * (height + FRAME_V_SPACING)
        return FrameBox(
            label=frame.label,
            value=frame.value,
            depth=depth,
            min_x=min_x,
            min_y=min_y,
            max_x=max_x,
            max_y=min_y + height,
            chain_ids=frozenset(frame.chain_ids),
            color=make_frame_color(frame.value, depth, min_x, max_x),
            text=f"{frame.label}: {_format_float(frame.value)}",
        )

    def _child_spans(
        self, frame: StackFrame, depth: int, min_x: float, max_x: float
    ) -> Iterator[tuple[StackFrame, int, float, float]]:
        length = max_x - min_x
        child_min_x = min_x
        selected = self.selected_chain_ids
        for _, child in sorted(frame.children.items()):
            if child.value == 0.0:
                continue
            is_selected = False
            if selected is not None:
                if selected.isdisjoint(child.chain_ids):
                    continue
                is_selected = selected == child.chain_ids

            child_value = frame.value if is_selected else min(frame.value, child.value)
            if frame.value == 0:
                child_max_x = max_x
            else:
                child_max_x = min(max_x, child_min_x + (child_value / frame.value) * length)

            yield child, depth - 1, child_min_x, child_max_x
            child_min_x = child_max_x + FRAME_H_SPACING

    def hover(self, box: FrameBox, root_value: float, unit: str) -> Color:
        """Show ``box`` in the info bar and return its highlight colour."""
        percent = _divide(box.value, root_value) * 100.0
        self.info_bar_text = (
            f"{box.label} ({_format_float(box.value)} {unit},  {_format_fixed(percent)}%)"
        )
        return saturate(box.color, HIGHLIGHT_FACTOR)

    def click(self, box: FrameBox) -> None:
        """Focus the graph on the chains passing through ``box``."""
        self.selected_chain_ids = box.chain_ids

    def reset(self) -> None:
        """Clear the selection and the info bar."""
        self.selected_chain_ids = None
        self.info_bar_text = ""

    def info_bar(self) -> str:
        """The info bar's text."""
        return f"Function: {self.info_bar_text}"