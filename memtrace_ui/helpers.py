"""Small formatting helpers shared by the views."""

from __future__ import annotations

_IEC_PREFIXES = "KMGTPE"
_IEC_UNIT = 1024


def format_bytes(size: int) -> str:
    """Human-readable byte count in binary units, e.g. ``"1.5 KiB"``."""
    if size < 0:
        raise ValueError(f"byte count cannot be negative: {size}")
    if size < _IEC_UNIT:
        return f"{size} B"
    exponent = 1
    while exponent < len(_IEC_PREFIXES) and _IEC_UNIT ** (exponent + 1) <= size:
        exponent += 1
    scaled = size / _IEC_UNIT**exponent
    return f"{scaled:.1f} {_IEC_PREFIXES[exponent - 1]}iB"


def key_value(key: str, value: object) -> str:
    """A ``key: value`` line."""
    return f"{key}: {value}"