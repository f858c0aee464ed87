"""Styles parser - Parse styles.xml and resolve basedOn inheritance chains."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from docxstream.docx_parser.utils import (
    detect_heading_level,
    merge_defined,
    normalize_alignment,
    normalize_color,
    parse_boolean_on_off,
    parse_int,
)
from docxstream.docx_parser.xmltree import (
    XmlElement,
    attribute,
    child,
    child_elements,
    children_named,
    parse_xml,
)

logger = logging.getLogger(__name__)

StyleKind = Literal["run", "para"]

# Toggle elements whose presence without w:val means "on"
_RUN_TOGGLES = {
    "w:b": "bold",
    "w:i": "italic",
    "w:strike": "strikethrough",
    "w:dstrike": "double_strikethrough",
    "w:smallCaps": "small_caps",
    "w:caps": "all_caps",
    "w:emboss": "emboss",
    "w:imprint": "imprint",
    "w:shadow": "shadow",
    "w:outline": "outline",
}


@dataclass
class StyleDefinition:
    style_id: str
    type: Optional[str] = None  # paragraph, character, table, numbering
    based_on: Optional[str] = None
    name: Optional[str] = None
    run: Dict[str, Any] = field(default_factory=dict)
    para: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StyleTable:
    styles: Dict[str, StyleDefinition] = field(default_factory=dict)
    doc_default_run: Dict[str, Any] = field(default_factory=dict)
    doc_default_para: Dict[str, Any] = field(default_factory=dict)


def parse_run_properties(rPr: Optional[XmlElement]) -> Tuple[Dict[str, Any], Optional[str]]:
    """Parse a w:rPr node into defined run properties plus its character style id."""
    props: Dict[str, Any] = {}
    char_style_id: Optional[str] = None
    if rPr is None:
        return props, char_style_id

    for c in child_elements(rPr):
        tn = c.tag
        val = attribute(c, "w:val")

        if tn == "w:rStyle":
            if val:
                char_style_id = val
        elif tn in _RUN_TOGGLES:
            props[_RUN_TOGGLES[tn]] = parse_boolean_on_off(val, True)
        elif tn == "w:u":
            v = (val or "").strip().lower()
            props["underline"] = v != "none"
        elif tn == "w:color":
            color = normalize_color(val)
            if color:
                props["color"] = color
        elif tn == "w:sz":
            size = parse_int(val)
            if size is not None:
                props["font_size"] = size / 2
        elif tn == "w:szCs":
            # Complex-script size only stands in when w:sz is absent
            size = parse_int(val)
            if size is not None and child(rPr, "w:sz") is None:
                props["font_size"] = size / 2
        elif tn == "w:rFonts":
            font = (
                attribute(c, "w:eastAsia")
                or attribute(c, "w:ascii")
                or attribute(c, "w:hAnsi")
            )
            if font:
                props["font"] = font
        elif tn == "w:highlight":
            v = (val or "").strip()
            if v and v.lower() != "none":
                props["highlight"] = v
        elif tn == "w:vertAlign":
            v = (val or "").strip().lower()
            if v == "subscript":
                props["subscript"] = True
            elif v == "superscript":
                props["superscript"] = True
            elif v == "baseline":
                props["subscript"] = False
                props["superscript"] = False

    return props, char_style_id


def _parse_style_para(pPr: Optional[XmlElement]) -> Dict[str, Any]:
    para: Dict[str, Any] = {}
    jc = child(pPr, "w:jc")
    if jc is not None:
        alignment = normalize_alignment(attribute(jc, "w:val"))
        if alignment:
            para["alignment"] = alignment
    return para


def parse_styles(styles_xml: bytes) -> StyleTable:
    """Parse styles.xml into a style table with document defaults.

    Args:
        styles_xml: Raw bytes of styles.xml content.

    Returns:
        StyleTable keyed by style id. Styles without an id are skipped.
    """
    root = parse_xml(styles_xml)
    table = StyleTable()

    doc_defaults = child(root, "w:docDefaults")
    if doc_defaults is not None:
        rPr_default = child(child(doc_defaults, "w:rPrDefault"), "w:rPr")
        table.doc_default_run, _ = parse_run_properties(rPr_default)
        pPr_default = child(child(doc_defaults, "w:pPrDefault"), "w:pPr")
        table.doc_default_para = _parse_style_para(pPr_default)

    for style in children_named(root, "w:style"):
        style_id = attribute(style, "w:styleId")
        if not style_id:
            continue

        name = attribute(child(style, "w:name"), "w:val")
        definition = StyleDefinition(
            style_id=style_id,
            type=attribute(style, "w:type"),
            based_on=attribute(child(style, "w:basedOn"), "w:val") or None,
            name=name,
        )
        definition.run, _ = parse_run_properties(child(style, "w:rPr"))
        definition.para = _parse_style_para(child(style, "w:pPr"))
        heading_level = detect_heading_level(style_id, name)
        if heading_level is not None:
            definition.para["heading_level"] = heading_level

        table.styles[style_id] = definition

    logger.debug(f"Parsed {len(table.styles)} styles")
    return table


def resolve_style_chain(
    style_id: Optional[str], styles: Dict[str, StyleDefinition], kind: StyleKind
) -> Dict[str, Any]:
    """Effective run or paragraph properties of a style after basedOn inheritance.

    Unknown ids resolve to ``{}``. A cycle in the basedOn chain stops
    inheritance at the first repeated style.
    """
    chain: List[StyleDefinition] = []
    visited = set()
    current = style_id
    while current and current not in visited:
        visited.add(current)
        definition = styles.get(current)
        if definition is None:
            break
        chain.append(definition)
        current = definition.based_on
    if current and current in visited:
        logger.warning(f"Cyclic basedOn chain at style '{current}'")

    # Root ancestor first so the most specific style wins
    parts = [d.run if kind == "run" else d.para for d in reversed(chain)]
    return merge_defined(*parts)
