"""Numbering parser - Parse numbering.xml for list definitions."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from docxstream.docx_parser.utils import parse_int
from docxstream.docx_parser.xmltree import (
    XmlElement,
    attribute,
    child,
    children_named,
    parse_xml,
)
from docxstream.ir import NumberingLevel, NumberingSpec

logger = logging.getLogger(__name__)

NumberingMap = Dict[str, Dict[int, NumberingLevel]]


def _parse_level(lvl: XmlElement) -> NumberingLevel:
    return NumberingLevel(
        format=attribute(child(lvl, "w:numFmt"), "w:val"),
        text=attribute(child(lvl, "w:lvlText"), "w:val"),
        start=parse_int(attribute(child(lvl, "w:start"), "w:val")),
    )


def parse_numbering(numbering_xml: bytes) -> NumberingMap:
    """Parse numbering.xml to build numId -> level -> format/text.

    Args:
        numbering_xml: Raw bytes of numbering.xml content.

    Returns:
        Dict mapping numId to its levels. Instances that reference a missing
        abstractNum are left out.
    """
    root = parse_xml(numbering_xml)

    abstract_nums: Dict[str, Dict[int, NumberingLevel]] = {}
    for abstract in children_named(root, "w:abstractNum"):
        abstract_id = attribute(abstract, "w:abstractNumId")
        if abstract_id is None:
            continue
        levels: Dict[int, NumberingLevel] = {}
        for lvl in children_named(abstract, "w:lvl"):
            ilvl = parse_int(attribute(lvl, "w:ilvl"))
            if ilvl is not None:
                levels[ilvl] = _parse_level(lvl)
        abstract_nums[abstract_id] = levels

    numbering_map: NumberingMap = {}
    for num in children_named(root, "w:num"):
        num_id = attribute(num, "w:numId")
        abstract_id = attribute(child(num, "w:abstractNumId"), "w:val")
        if num_id is None or abstract_id is None:
            continue
        if abstract_id not in abstract_nums:
            logger.warning(f"numId {num_id} references missing abstractNum {abstract_id}")
            continue

        levels = {k: NumberingLevel(v.format, v.text, v.start) for k, v in abstract_nums[abstract_id].items()}

        # Instance-level overrides
        for override in children_named(num, "w:lvlOverride"):
            ilvl = parse_int(attribute(override, "w:ilvl"))
            if ilvl is None:
                continue
            lvl = child(override, "w:lvl")
            if lvl is not None:
                levels[ilvl] = _parse_level(lvl)
            start = parse_int(attribute(child(override, "w:startOverride"), "w:val"))
            if start is not None:
                levels.setdefault(ilvl, NumberingLevel()).start = start

        numbering_map[num_id] = levels

    logger.debug(f"Parsed {len(numbering_map)} numbering instances")
    return numbering_map


def get_list_info(
    num_id: Optional[int], ilvl: Optional[int], numbering_map: NumberingMap
) -> Optional[NumberingLevel]:
    """Level definition for a numId/ilvl pair, or None when it does not resolve."""
    if num_id is None:
        return None
    levels = numbering_map.get(str(num_id))
    if levels is None:
        return None
    return levels.get(ilvl if ilvl is not None else 0)


def apply_numbering(numbering: Optional[NumberingSpec], numbering_map: NumberingMap) -> None:
    """Backfill format/text/start of a paragraph's numbering reference in place."""
    if numbering is None:
        return
    level = get_list_info(numbering.num_id, numbering.level, numbering_map)
    if level is None:
        return
    numbering.format = level.format
    numbering.text = level.text
    numbering.start = level.start
