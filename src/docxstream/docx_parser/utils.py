"""Primitive normalizers shared by the OOXML parsers."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from docxstream.ir import Alignment

_HEX6 = re.compile(r"^[0-9A-F]{6}$")
_HEX8 = re.compile(r"^[0-9A-F]{8}$")
_HEADING = re.compile(r"heading[\s_]*([1-6])(?!\d)", re.IGNORECASE)

_FALSE_VALUES = {"0", "false", "off", "none"}


def parse_boolean_on_off(value: Optional[str], default: Optional[bool] = None) -> Optional[bool]:
    """Parse an OOXML on/off attribute.

    An absent value returns ``default``; ``<w:b/>`` means "on", so callers
    reading toggle elements pass ``default=True``.
    """
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def normalize_color(value: Optional[str]) -> Optional[str]:
    """Normalize a hex color to 6 uppercase digits.

    8-digit values are ARGB, so the leading alpha byte is dropped.
    ``auto`` and anything that is not hex return None.
    """
    if not value:
        return None
    v = value.strip().lstrip("#").upper()
    if not v or v == "AUTO":
        return None
    if _HEX6.match(v):
        return v
    if _HEX8.match(v):
        return v[2:]
    return None


def normalize_border_color(value: Optional[str]) -> Optional[str]:
    """Like ``normalize_color`` but keeps ``auto``, which borders use literally."""
    if not value:
        return None
    if value.strip().lower() == "auto":
        return "auto"
    return normalize_color(value)


def normalize_alignment(value: Optional[str]) -> Optional[Alignment]:
    if not value:
        return None
    v = value.strip().lower()
    if v == "center":
        return "center"
    if v in ("right", "end"):
        return "right"
    if v in ("left", "start"):
        return "left"
    if v in ("both", "justify"):
        return "justify"
    return None


def detect_heading_level(style_id: Optional[str], style_name: Optional[str] = None) -> Optional[int]:
    """Heading level 1-6 from a style id such as ``Heading2`` or a name like ``heading 2``.

    The id is checked first; the display name is only consulted when the id
    does not match.
    """
    for candidate in (style_id, style_name):
        if not candidate:
            continue
        match = _HEADING.search(candidate)
        if match:
            return int(match.group(1))
    return None


def merge_defined(*parts: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge property dicts left to right; later defined values win."""
    out: Dict[str, Any] = {}
    for part in parts:
        if not part:
            continue
        for key, value in part.items():
            if value is not None:
                out[key] = value
    return out


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a leading integer like JavaScript's parseInt; None when absent."""
    if value is None:
        return None
    match = re.match(r"^\s*([+-]?\d+)", value)
    if not match:
        return None
    return int(match.group(1))
