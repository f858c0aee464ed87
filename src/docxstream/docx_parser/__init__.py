"""DOCX Parser Package - OOXML extraction modules."""

from .archive import ArchiveError, list_entries, read_entry, replace_entry
from .document import parse_body, parse_docx, parse_docx_document
from .numbering import get_list_info, parse_numbering
from .paragraphs import ParseContext, parse_paragraph
from .relationships import get_relationship_targets, parse_relationships
from .sections import parse_section_properties, parse_sections
from .styles import parse_styles, resolve_style_chain
from .tables import parse_table

__all__ = [
    "ArchiveError",
    "list_entries",
    "read_entry",
    "replace_entry",
    "parse_body",
    "parse_docx",
    "parse_docx_document",
    "get_list_info",
    "parse_numbering",
    "ParseContext",
    "parse_paragraph",
    "get_relationship_targets",
    "parse_relationships",
    "parse_section_properties",
    "parse_sections",
    "parse_styles",
    "resolve_style_chain",
    "parse_table",
]
