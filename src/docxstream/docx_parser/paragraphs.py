"""Paragraph parser - Resolve runs, formatting and inline extras of w:p."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from docxstream.docx_parser.numbering import NumberingMap
from docxstream.docx_parser.relationships import Relationship
from docxstream.docx_parser.styles import StyleTable, parse_run_properties, resolve_style_chain
from docxstream.docx_parser.utils import (
    merge_defined,
    normalize_alignment,
    parse_boolean_on_off,
    parse_int,
)
from docxstream.docx_parser.xmltree import (
    XmlElement,
    attribute,
    child,
    child_elements,
    iter_descendants,
    text_content,
)
from docxstream.ir import (
    UNIFORM_RUN_FIELDS,
    Alignment,
    BookmarkSpec,
    CommentSpec,
    DocxParagraph,
    FieldSpec,
    ImageSpec,
    Indent,
    NoteSpec,
    NumberingSpec,
    ParagraphSpacing,
    RevisionSpec,
    RunStyle,
)

logger = logging.getLogger(__name__)

EMU_PER_POINT = 914400 / 72

# Run children that contribute visible text
_RUN_TEXT_TAGS = {"w:t", "w:tab", "w:br", "w:cr"}

# Containers whose runs are part of the paragraph's visible text
_TRANSPARENT_CONTAINERS = {"w:smartTag", "w:customXml", "w:fldSimple", "w:dir", "w:bdo"}

_MARKER_TAGS = {"w:bookmarkStart", "w:bookmarkEnd", "w:commentRangeStart", "w:commentRangeEnd"}

_REVISION_TYPES = {
    "w:ins": "insert",
    "w:del": "delete",
    "w:moveTo": "moveTo",
    "w:moveFrom": "moveFrom",
}

# Prefixes checked in order; PAGEREF must win over REF
_FIELD_TYPES = (
    ("TOC", "toc"),
    ("PAGEREF", "pageref"),
    ("REF", "ref"),
    ("HYPERLINK", "hyperlink"),
    ("DATE", "date"),
    ("TIME", "time"),
    ("=", "formula"),
)


@dataclass
class ParseContext:
    """Tables shared by every paragraph and table parsed from one package."""

    styles: StyleTable = field(default_factory=StyleTable)
    relationships: Dict[str, Relationship] = field(default_factory=dict)
    numbering: NumberingMap = field(default_factory=dict)

    def target_of(self, rel_id: Optional[str], kind: str) -> Optional[str]:
        rel = self.relationships.get(rel_id) if rel_id else None
        if rel is None or rel.kind != kind:
            return None
        return rel.target


@dataclass
class ParagraphProperties:
    """Direct properties from a w:pPr node."""

    alignment: Optional[Alignment] = None
    style_id: Optional[str] = None
    run_defaults: Dict[str, Any] = field(default_factory=dict)
    spacing: Optional[ParagraphSpacing] = None
    numbering: Optional[NumberingSpec] = None
    indent: Optional[Indent] = None
    keep_next: Optional[bool] = None
    keep_lines: Optional[bool] = None
    page_break_before: Optional[bool] = None
    widow_control: Optional[bool] = None
    outline_level: Optional[int] = None


def parse_paragraph_properties(pPr: Optional[XmlElement]) -> ParagraphProperties:
    props = ParagraphProperties()
    if pPr is None:
        return props

    for c in child_elements(pPr):
        tn = c.tag
        val = attribute(c, "w:val")

        if tn == "w:jc":
            props.alignment = normalize_alignment(val)
        elif tn == "w:pStyle":
            if val:
                props.style_id = val
        elif tn == "w:rPr":
            props.run_defaults, _ = parse_run_properties(c)
        elif tn == "w:spacing":
            line_rule = (attribute(c, "w:lineRule") or "").strip().lower()
            spacing = ParagraphSpacing(
                before=parse_int(attribute(c, "w:before")),
                after=parse_int(attribute(c, "w:after")),
                line=parse_int(attribute(c, "w:line")),
                line_rule={"auto": "auto", "exact": "exact", "atleast": "atLeast"}.get(line_rule),
            )
            if spacing != ParagraphSpacing():
                props.spacing = spacing
        elif tn == "w:numPr":
            props.numbering = NumberingSpec(
                num_id=parse_int(attribute(child(c, "w:numId"), "w:val")),
                level=parse_int(attribute(child(c, "w:ilvl"), "w:val")),
            )
        elif tn == "w:ind":
            left = attribute(c, "w:left")
            right = attribute(c, "w:right")
            indent = Indent(
                left=parse_int(left if left is not None else attribute(c, "w:start")),
                right=parse_int(right if right is not None else attribute(c, "w:end")),
                first_line=parse_int(attribute(c, "w:firstLine")),
                hanging=parse_int(attribute(c, "w:hanging")),
            )
            if indent != Indent():
                props.indent = indent
        elif tn == "w:keepNext":
            props.keep_next = parse_boolean_on_off(val, True)
        elif tn == "w:keepLines":
            props.keep_lines = parse_boolean_on_off(val, True)
        elif tn == "w:pageBreakBefore":
            props.page_break_before = parse_boolean_on_off(val, True)
        elif tn == "w:widowControl":
            props.widow_control = parse_boolean_on_off(val, True)
        elif tn == "w:outlineLvl":
            props.outline_level = parse_int(val)

    return props


def detect_field_type(code: str) -> str:
    upper = code.strip().upper()
    for prefix, field_type in _FIELD_TYPES:
        if upper.startswith(prefix):
            return field_type
    return "other"


class _FieldScanner:
    """Tracks begin/separate/end field characters across consecutive runs."""

    def __init__(self) -> None:
        self.fields: List[FieldSpec] = []
        self._state: Optional[str] = None
        self._code: List[str] = []
        self._result: List[str] = []

    def feed(self, run: XmlElement) -> None:
        for c in child_elements(run):
            if c.tag == "w:fldChar":
                char_type = attribute(c, "w:fldCharType")
                if char_type == "begin":
                    self._state = "code"
                    self._code = []
                    self._result = []
                elif char_type == "separate" and self._state is not None:
                    self._state = "result"
                elif char_type == "end" and self._state is not None:
                    code = "".join(self._code)
                    self.fields.append(
                        FieldSpec(
                            code=code.strip(),
                            result="".join(self._result).strip(),
                            field_type=detect_field_type(code),
                        )
                    )
                    self._state = None
            elif c.tag == "w:instrText" and self._state == "code":
                self._code.append(text_content(c))
            elif c.tag in _RUN_TEXT_TAGS and self._state == "result":
                self._result.append(text_content(c))


def parse_drawing(drawing: XmlElement, ctx: ParseContext) -> List[ImageSpec]:
    """Pictures in a w:drawing (inline or anchored). Sizes are converted to points."""
    images: List[ImageSpec] = []
    for holder in child_elements(drawing):
        if holder.tag not in ("wp:inline", "wp:anchor"):
            continue
        pic = child(child(child(holder, "a:graphic"), "a:graphicData"), "pic:pic")
        if pic is None:
            continue

        blip = child(child(pic, "pic:blipFill"), "a:blip")
        embed_id = attribute(blip, "r:embed")
        ext = child(child(child(pic, "pic:spPr"), "a:xfrm"), "a:ext")
        cx = parse_int(attribute(ext, "cx"))
        cy = parse_int(attribute(ext, "cy"))
        c_nv_pr = child(child(pic, "pic:nvPicPr"), "pic:cNvPr")

        images.append(
            ImageSpec(
                relationship_id=embed_id,
                target=ctx.target_of(embed_id, "image"),
                width=cx / EMU_PER_POINT if cx is not None else None,
                height=cy / EMU_PER_POINT if cy is not None else None,
                description=attribute(c_nv_pr, "descr"),
                title=attribute(c_nv_pr, "title"),
            )
        )
    return images


def parse_run(
    r: XmlElement,
    ctx: ParseContext,
    para_style_run: Dict[str, Any],
    para_run_defaults: Dict[str, Any],
) -> RunStyle:
    """Resolve a w:r through the full precedence cascade.

    doc default < paragraph style < paragraph rPr < character style < direct
    """
    direct, char_style_id = parse_run_properties(child(r, "w:rPr"))
    char_style_run = resolve_style_chain(char_style_id, ctx.styles.styles, "run")
    effective = merge_defined(
        ctx.styles.doc_default_run, para_style_run, para_run_defaults, char_style_run, direct
    )
    text = "".join(text_content(c) for c in child_elements(r) if c.tag in _RUN_TEXT_TAGS)
    return RunStyle(text=text, **effective)


class _ParagraphWalker:
    """Collects runs and inline extras from the content of one paragraph."""

    def __init__(
        self,
        ctx: ParseContext,
        para_style_run: Dict[str, Any],
        run_defaults: Dict[str, Any],
    ) -> None:
        self.ctx = ctx
        self.para_style_run = para_style_run
        self.run_defaults = run_defaults
        self.runs: List[RunStyle] = []
        self.images: List[ImageSpec] = []
        self.notes: List[NoteSpec] = []
        self.revisions: List[RevisionSpec] = []
        self.simple_fields: List[FieldSpec] = []
        self.hyperlink_targets: Set[str] = set()
        self.bookmarks: List[BookmarkSpec] = []
        self.comment_ranges: List[CommentSpec] = []
        self.field_scanner = _FieldScanner()

    def walk(self, container: XmlElement) -> None:
        for c in child_elements(container):
            tn = c.tag
            if tn == "w:r":
                self._run(c)
            elif tn == "w:hyperlink":
                target = self.ctx.target_of(attribute(c, "r:id"), "hyperlink")
                if target:
                    self.hyperlink_targets.add(target)
                self.walk(c)
            elif tn in _REVISION_TYPES:
                self._revision(c)
            elif tn in _MARKER_TAGS:
                self._marker(c)
            elif tn == "w:sdt":
                content = child(c, "w:sdtContent")
                if content is not None:
                    self.walk(content)
            elif tn in _TRANSPARENT_CONTAINERS:
                if tn == "w:fldSimple":
                    instr = attribute(c, "w:instr") or ""
                    self.simple_fields.append(
                        FieldSpec(
                            code=instr.strip(),
                            result=text_content(c),
                            field_type=detect_field_type(instr),
                        )
                    )
                self.walk(c)

    def _run(self, r: XmlElement) -> None:
        for rc in child_elements(r):
            if rc.tag == "w:drawing":
                self.images.extend(parse_drawing(rc, self.ctx))
            elif rc.tag == "mc:AlternateContent":
                # Prefer Choice, then Fallback
                branch = child(rc, "mc:Choice")
                if branch is None:
                    branch = child(rc, "mc:Fallback")
                if branch is not None:
                    for drawing in iter_descendants(branch, "w:drawing"):
                        self.images.extend(parse_drawing(drawing, self.ctx))
            elif rc.tag == "w:footnoteReference":
                note_id = attribute(rc, "w:id")
                if note_id:
                    self.notes.append(NoteSpec(type="footnote", id=note_id))
            elif rc.tag == "w:endnoteReference":
                note_id = attribute(rc, "w:id")
                if note_id:
                    self.notes.append(NoteSpec(type="endnote", id=note_id))

        self.field_scanner.feed(r)
        run = parse_run(r, self.ctx, self.para_style_run, self.run_defaults)
        if run.text:
            self.runs.append(run)

    def _marker(self, node: XmlElement) -> None:
        marker_id = attribute(node, "w:id") or ""
        if not marker_id:
            return
        if node.tag == "w:bookmarkStart":
            self.bookmarks.append(BookmarkSpec(id=marker_id, name=attribute(node, "w:name") or "", type="start"))
        elif node.tag == "w:bookmarkEnd":
            self.bookmarks.append(BookmarkSpec(id=marker_id, name="", type="end"))
        elif node.tag == "w:commentRangeStart":
            self.comment_ranges.append(CommentSpec(id=marker_id, range_type="start"))
        else:
            self.comment_ranges.append(CommentSpec(id=marker_id, range_type="end"))

    def _revision(self, node: XmlElement) -> None:
        revision_type = _REVISION_TYPES[node.tag]
        if revision_type in ("insert", "moveTo"):
            before = len(self.runs)
            self.walk(node)
            content = "".join(run.text for run in self.runs[before:])
        else:
            # Deleted content never reaches the visible text
            content = "".join(text_content(t) for t in iter_descendants(node, "w:delText"))
            if not content:
                content = "".join(text_content(t) for t in iter_descendants(node, "w:t"))
        self.revisions.append(
            RevisionSpec(
                type=revision_type,
                id=attribute(node, "w:id"),
                author=attribute(node, "w:author"),
                date=attribute(node, "w:date"),
                content=content,
            )
        )


def build_paragraph_from_runs(runs: List[RunStyle], **paragraph_fields: Any) -> DocxParagraph:
    """Assemble a paragraph, copying run formatting up when every run agrees."""
    para = DocxParagraph(text="".join(r.text for r in runs), runs=runs, **paragraph_fields)
    if runs:
        first = runs[0]
        uniform = all(
            getattr(r, name) == getattr(first, name) for r in runs for name in UNIFORM_RUN_FIELDS
        )
        if uniform:
            for name in UNIFORM_RUN_FIELDS:
                setattr(para, name, getattr(first, name))
    return para


def parse_paragraph(p: XmlElement, ctx: ParseContext) -> DocxParagraph:
    """Parse a w:p element into a DocxParagraph.

    Args:
        p: The w:p node.
        ctx: Style, relationship and numbering tables of the package.

    Returns:
        DocxParagraph with resolved runs. A paragraph without text still
        carries one empty run with the formatting it would have applied.
    """
    props = parse_paragraph_properties(child(p, "w:pPr"))
    styles = ctx.styles
    para_style_run = resolve_style_chain(props.style_id, styles.styles, "run")
    para_style_para = resolve_style_chain(props.style_id, styles.styles, "para")

    alignment = props.alignment or para_style_para.get("alignment") or styles.doc_default_para.get("alignment")
    heading_level = para_style_para.get("heading_level")

    walker = _ParagraphWalker(ctx, para_style_run, props.run_defaults)
    walker.walk(p)

    runs = walker.runs
    if not runs:
        effective = merge_defined(styles.doc_default_run, para_style_run, props.run_defaults)
        runs = [RunStyle(text="", **effective)]

    targets = walker.hyperlink_targets
    return build_paragraph_from_runs(
        runs,
        alignment=alignment,
        heading_level=heading_level,
        style_id=props.style_id,
        spacing=props.spacing,
        indent=props.indent,
        numbering=props.numbering,
        # Several distinct targets are ambiguous, so no single link is reported
        link=next(iter(targets)) if len(targets) == 1 else None,
        keep_next=props.keep_next,
        keep_lines=props.keep_lines,
        page_break_before=props.page_break_before,
        widow_control=props.widow_control,
        outline_level=props.outline_level,
        images=walker.images,
        bookmarks=walker.bookmarks,
        fields=walker.simple_fields + walker.field_scanner.fields,
        notes=walker.notes,
        comments=walker.comment_ranges,
        revisions=walker.revisions,
    )
