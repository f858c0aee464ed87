"""XML tree adapter - Order-preserving element/text nodes over lxml.

Part XML is loaded into a small tagged tree: ``XmlElement`` for elements and
``XmlText`` for character data. Tag and attribute names are ``prefix:local``
strings using the canonical OOXML prefixes in ``NAMESPACES`` regardless of the
prefixes a producer happened to declare, so every lookup is a single string
comparison.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Union

from lxml import etree

# OOXML namespaces
NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "mc": "http://schemas.openxmlformats.org/markup-compatibility/2006",
    "m": "http://schemas.openxmlformats.org/officeDocument/2006/math",
    "v": "urn:schemas-microsoft-com:vml",
    "o": "urn:schemas-microsoft-com:office:office",
    "w10": "urn:schemas-microsoft-com:office:word",
    "w14": "http://schemas.microsoft.com/office/word/2010/wordml",
    "w15": "http://schemas.microsoft.com/office/word/2012/wordml",
    "wps": "http://schemas.microsoft.com/office/word/2010/wordprocessingShape",
    "wpg": "http://schemas.microsoft.com/office/word/2010/wordprocessingGroup",
    "wp14": "http://schemas.microsoft.com/office/word/2010/wordprocessingDrawing",
}

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

_PREFIX_BY_URI = {uri: prefix for prefix, uri in NAMESPACES.items()}
_PREFIX_BY_URI[XML_NAMESPACE] = "xml"

# Elements whose whitespace-only text is content rather than indentation
TEXT_BEARING_TAGS = frozenset({"w:t", "w:instrText", "w:delText", "w:delInstrText", "a:t"})

TEXT_TAG = "#text"


@dataclass
class XmlText:
    value: str


@dataclass
class XmlElement:
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["XmlNode"] = field(default_factory=list)
    # Namespace declarations for the whole part; only set on the root
    nsmap: Dict[Optional[str], str] = field(default_factory=dict)


XmlNode = Union[XmlElement, XmlText]


class _NamespaceScope:
    """Prefixes for the non-canonical namespaces met while loading one part.

    Declarations found on inner elements are folded into the root so that
    ``to_xml`` can write the tree back with a single set of declarations.
    """

    def __init__(self, root_nsmap: Mapping[Optional[str], str]) -> None:
        self.default_uri = root_nsmap.get(None)
        self.declared: Dict[str, str] = {p: u for p, u in root_nsmap.items() if p}
        self._prefix_by_uri = {u: p for p, u in self.declared.items()}

    def prefix_for(self, uri: str, hint: Optional[str]) -> str:
        prefix = _PREFIX_BY_URI.get(uri) or self._prefix_by_uri.get(uri)
        if prefix:
            return prefix
        if not hint or hint in self.declared or hint in NAMESPACES:
            n = 0
            while f"ns{n}" in self.declared:
                n += 1
            hint = f"ns{n}"
        self.declared[hint] = uri
        self._prefix_by_uri[uri] = hint
        return hint

    def tag_name(self, elem: etree._Element) -> str:
        qname = etree.QName(elem)
        if qname.namespace is None:
            return qname.localname
        if qname.namespace == self.default_uri and qname.namespace not in _PREFIX_BY_URI:
            return qname.localname
        return f"{self.prefix_for(qname.namespace, elem.prefix)}:{qname.localname}"

    def attribute_name(self, clark: str, nsmap: Mapping[Optional[str], str]) -> str:
        qname = etree.QName(clark)
        if qname.namespace is None:
            return qname.localname
        hint = next((p for p, uri in nsmap.items() if uri == qname.namespace and p), None)
        return f"{self.prefix_for(qname.namespace, hint)}:{qname.localname}"


def _append_text(children: List[XmlNode], text: Optional[str], parent_tag: str) -> None:
    if not text:
        return
    if parent_tag not in TEXT_BEARING_TAGS and not text.strip():
        return
    children.append(XmlText(text))


def _from_lxml(elem: etree._Element, scope: _NamespaceScope) -> XmlElement:
    tag = scope.tag_name(elem)
    node = XmlElement(
        tag=tag,
        attributes={scope.attribute_name(k, elem.nsmap): v for k, v in elem.attrib.items()},
    )
    _append_text(node.children, elem.text, tag)
    for child in elem:
        # Comments and processing instructions carry no document content
        if isinstance(child.tag, str):
            node.children.append(_from_lxml(child, scope))
        _append_text(node.children, child.tail, tag)
    return node


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)


def parse_xml(data: Union[bytes, str]) -> XmlElement:
    """Parse part XML into an ``XmlElement`` tree.

    Raises:
        lxml.etree.XMLSyntaxError: If the data is not well-formed XML.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    root = etree.fromstring(data, _make_parser())
    scope = _NamespaceScope(root.nsmap)
    node = _from_lxml(root, scope)
    node.nsmap = dict(root.nsmap)
    node.nsmap.update(scope.declared)
    return node


def _used_prefixes(node: XmlElement, found: set) -> set:
    for name in [node.tag, *node.attributes]:
        if ":" in name:
            found.add(name.split(":", 1)[0])
    for c in node.children:
        if isinstance(c, XmlElement):
            _used_prefixes(c, found)
    return found


def _clark(name: str, uri_by_prefix: Mapping[str, str], default_uri: Optional[str]) -> str:
    if ":" not in name:
        return f"{{{default_uri}}}{name}" if default_uri else name
    prefix, local = name.split(":", 1)
    uri = uri_by_prefix.get(prefix)
    if uri is None:
        raise ValueError(f"Unknown namespace prefix '{prefix}' in '{name}'")
    return f"{{{uri}}}{local}"


def _to_lxml(
    node: XmlElement,
    parent: Optional[etree._Element],
    uri_by_prefix: Mapping[str, str],
    default_uri: Optional[str],
    nsmap: Optional[Dict[Optional[str], str]] = None,
) -> etree._Element:
    tag = _clark(node.tag, uri_by_prefix, default_uri)
    if parent is None:
        elem = etree.Element(tag, nsmap=nsmap)
    else:
        elem = etree.SubElement(parent, tag)
    for name, value in node.attributes.items():
        # Unprefixed attributes are never in the default namespace
        elem.set(_clark(name, uri_by_prefix, None), value)

    last: Optional[etree._Element] = None
    for c in node.children:
        if isinstance(c, XmlText):
            if last is None:
                elem.text = (elem.text or "") + c.value
            else:
                last.tail = (last.tail or "") + c.value
        else:
            last = _to_lxml(c, elem, uri_by_prefix, default_uri)
    return elem


def to_xml(root: XmlElement) -> bytes:
    """Serialize a tree produced by ``parse_xml`` back to UTF-8 XML bytes."""
    nsmap: Dict[Optional[str], str] = dict(root.nsmap)
    declared = {uri for uri in nsmap.values()}
    for prefix in sorted(_used_prefixes(root, set())):
        if prefix == "xml" or prefix in nsmap:
            continue
        uri = NAMESPACES.get(prefix)
        if uri is not None and (uri not in declared or _PREFIX_BY_URI.get(uri) == prefix):
            nsmap[prefix] = uri

    uri_by_prefix: Dict[str, str] = {p: u for p, u in NAMESPACES.items()}
    uri_by_prefix.update({p: u for p, u in nsmap.items() if p})
    uri_by_prefix["xml"] = XML_NAMESPACE

    elem = _to_lxml(root, None, uri_by_prefix, nsmap.get(None), nsmap)
    return etree.tostring(elem, xml_declaration=True, encoding="UTF-8", standalone=True)


def tag_name(node: XmlNode) -> str:
    if isinstance(node, XmlText):
        return TEXT_TAG
    return node.tag


def attributes(node: Optional[XmlNode]) -> Dict[str, str]:
    if isinstance(node, XmlElement):
        return node.attributes
    return {}


def attribute(
    node: Union[XmlNode, Mapping[str, str], None], name: str, default: Optional[str] = None
) -> Optional[str]:
    """Look up one attribute on a node or an attribute bag."""
    if node is None:
        return default
    bag = node if isinstance(node, Mapping) else attributes(node)
    return bag.get(name, default)


def children(node: Optional[XmlNode]) -> List[XmlNode]:
    if isinstance(node, XmlElement):
        return node.children
    return []


def child(node: Optional[XmlNode], name: str) -> Optional[XmlElement]:
    """First child element with the given tag, or None."""
    for c in children(node):
        if isinstance(c, XmlElement) and c.tag == name:
            return c
    return None


def children_named(node: Optional[XmlNode], name: str) -> List[XmlElement]:
    return [c for c in children(node) if isinstance(c, XmlElement) and c.tag == name]


def child_elements(node: Optional[XmlNode]) -> List[XmlElement]:
    return [c for c in children(node) if isinstance(c, XmlElement)]


def iter_descendants(node: XmlNode, name: str) -> Iterator[XmlElement]:
    """Depth-first iteration over descendant elements with the given tag."""
    for c in children(node):
        if isinstance(c, XmlElement):
            if c.tag == name:
                yield c
            yield from iter_descendants(c, name)


def text_content(node: Optional[XmlNode]) -> str:
    """Visible text of a node: tabs and breaks become ``\\t`` and ``\\n``."""
    if node is None:
        return ""
    if isinstance(node, XmlText):
        return node.value
    if node.tag == "w:tab":
        return "\t"
    if node.tag in ("w:br", "w:cr"):
        return "\n"
    return "".join(text_content(c) for c in node.children)


def clone(node: XmlNode) -> XmlNode:
    return copy.deepcopy(node)
