"""Tests for the tagged XML tree used by every parser."""

from lxml import etree

from docxstream.docx_parser.xmltree import (
    NAMESPACES,
    XmlElement,
    XmlText,
    attribute,
    child,
    children_named,
    parse_xml,
    tag_name,
    text_content,
    to_xml,
)


class TestParseXml:
    """Tests for converting lxml trees into XmlElement nodes."""

    def test_canonical_prefixes(self):
        """Namespaced tags use the canonical prefix even if the source used another."""
        xml = f'<x:p xmlns:x="{NAMESPACES["w"]}"><x:r><x:t>Hi</x:t></x:r></x:p>'
        root = parse_xml(xml)

        assert root.tag == "w:p"
        assert child(child(root, "w:r"), "w:t") is not None

    def test_attributes_are_qualified(self):
        xml = f'<w:jc xmlns:w="{NAMESPACES["w"]}" w:val="center"/>'
        root = parse_xml(xml)

        assert attribute(root, "w:val") == "center"
        assert attribute(root, "w:missing", "fallback") == "fallback"

    def test_indentation_whitespace_dropped(self):
        """Whitespace between elements is formatting, not content."""
        xml = f"""
        <w:r xmlns:w="{NAMESPACES['w']}">
            <w:t>A</w:t>
        </w:r>
        """
        root = parse_xml(xml)

        assert [tag_name(c) for c in root.children] == ["w:t"]

    def test_whitespace_in_text_preserved(self):
        xml = f'<w:t xmlns:w="{NAMESPACES["w"]}" xml:space="preserve">   </w:t>'
        root = parse_xml(xml)

        assert root.children == [XmlText("   ")]
        assert tag_name(root.children[0]) == "#text"

    def test_entities_not_resolved(self):
        """External entities are never expanded."""
        xml = (
            '<?xml version="1.0"?><!DOCTYPE d [<!ENTITY e SYSTEM "file:///etc/passwd">]>'
            f'<w:t xmlns:w="{NAMESPACES["w"]}">&e;</w:t>'
        )
        root = parse_xml(xml.encode())

        assert "root:" not in text_content(root)


class TestTextContent:
    """Tests for text extraction helpers."""

    def test_tab_and_break(self):
        xml = f'<w:r xmlns:w="{NAMESPACES["w"]}"><w:t>A</w:t><w:tab/><w:t>B</w:t><w:br/><w:t>C</w:t></w:r>'
        assert text_content(parse_xml(xml)) == "A\tB\nC"

    def test_children_named(self):
        xml = f'<w:tr xmlns:w="{NAMESPACES["w"]}"><w:tc/><w:trPr/><w:tc/></w:tr>'
        root = parse_xml(xml)

        assert len(children_named(root, "w:tc")) == 2
        assert children_named(None, "w:tc") == []


class TestToXml:
    """Tests for serializing XmlElement trees."""

    def test_roundtrip_keeps_namespaces(self):
        xml = f'<w:document xmlns:w="{NAMESPACES["w"]}"><w:body><w:p><w:r><w:t xml:space="preserve"> x </w:t></w:r></w:p></w:body></w:document>'
        data = to_xml(parse_xml(xml))

        assert data.startswith(b"<?xml")
        reparsed = etree.fromstring(data)
        assert reparsed.tag == f"{{{NAMESPACES['w']}}}document"
        t = reparsed.find(".//w:t", NAMESPACES)
        assert t.text == " x "

    def test_declares_used_prefixes(self):
        """Prefixes introduced after parsing still get a declaration."""
        root = XmlElement(tag="w:p", nsmap={"w": NAMESPACES["w"]})
        root.children.append(XmlElement(tag="w:hyperlink", attributes={"r:id": "rId1"}))
        reparsed = etree.fromstring(to_xml(root))

        link = reparsed.find("w:hyperlink", NAMESPACES)
        assert link.get(f"{{{NAMESPACES['r']}}}id") == "rId1"

    def test_inner_declarations_kept(self):
        """Prefixes and default namespaces declared on inner elements are written back."""
        xml = (
            f'<w:p xmlns:w="{NAMESPACES["w"]}">'
            '<a14:dpi xmlns:a14="urn:a14" a14:val="0"/><note xmlns="urn:note"/></w:p>'
        )
        root = parse_xml(xml)
        assert [c.tag for c in root.children] == ["a14:dpi", "ns0:note"]

        reparsed = etree.fromstring(to_xml(root))
        assert reparsed.find("{urn:a14}dpi").get("{urn:a14}val") == "0"
        assert reparsed.find("{urn:note}note") is not None
