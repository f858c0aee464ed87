"""Relationship parser - Map relationship ids to targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlsplit

from docxstream.docx_parser.xmltree import attribute, child_elements, parse_xml

logger = logging.getLogger(__name__)

# Suffixes of the relationship type URIs the parsers resolve
RELATIONSHIP_KINDS = ("hyperlink", "image", "header", "footer", "footnotes", "endnotes", "comments")

ALLOWED_URL_SCHEMES = {"http", "https", "mailto", "ftp"}


@dataclass
class Relationship:
    id: str
    type: str
    target: str
    target_mode: Optional[str] = None

    @property
    def kind(self) -> str:
        return self.type.rsplit("/", 1)[-1]


def is_safe_external_url(url: str) -> bool:
    try:
        scheme = urlsplit(url.strip()).scheme.lower()
    except ValueError:
        return False
    return scheme in ALLOWED_URL_SCHEMES


def parse_relationships(rels_xml: bytes) -> Dict[str, Relationship]:
    """Parse a .rels part into id -> Relationship.

    Only hyperlink, image, header, footer, note and comment relationships are
    kept. External targets with a scheme other than http(s), mailto or ftp
    are dropped.
    """
    root = parse_xml(rels_xml)
    rels: Dict[str, Relationship] = {}

    for rel in child_elements(root):
        if rel.tag != "Relationship":
            continue
        rel_id = attribute(rel, "Id")
        rel_type = attribute(rel, "Type")
        target = attribute(rel, "Target")
        if not rel_id or not rel_type or not target:
            continue

        relationship = Relationship(rel_id, rel_type, target, attribute(rel, "TargetMode"))
        if relationship.kind not in RELATIONSHIP_KINDS:
            continue
        if relationship.target_mode == "External" and not is_safe_external_url(target):
            logger.warning(f"Blocked unsafe external URL in relationship {rel_id}: {target}")
            continue
        rels[rel_id] = relationship

    return rels


def get_relationship_targets(rels: Dict[str, Relationship], kind: Optional[str] = None) -> Dict[str, str]:
    """Flatten relationships to id -> target, optionally for one kind only."""
    return {
        rel_id: rel.target
        for rel_id, rel in rels.items()
        if kind is None or rel.kind == kind
    }


def resolve_part_path(target: str, base_dir: str = "word") -> str:
    """Turn a relationship target into a package entry path."""
    if target.startswith("/"):
        return target.lstrip("/")
    parts = [p for p in base_dir.split("/") if p]
    for segment in target.split("/"):
        if segment == "..":
            if parts:
                parts.pop()
        elif segment and segment != ".":
            parts.append(segment)
    return "/".join(parts)
