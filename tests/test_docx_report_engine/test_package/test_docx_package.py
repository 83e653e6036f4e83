"""Tests for the docx package layer."""

import pytest
from lxml import etree

from docx_report_engine.package import (
    DocxPackage,
    Relationships,
    rels_part_for,
    resolve_target,
)
from docx_report_engine.package.docx import HYPERLINK_REL, IMAGE_REL, PKG_REL_NS
from docx_report_engine.shared import TemplateParseError
from docx_report_engine.tree import parse_xml


class TestPathHelpers:
    """Test part name helpers."""

    def test_rels_part_for(self):
        """Test relationship part names."""
        assert rels_part_for("word/document.xml") == "word/_rels/document.xml.rels"

    def test_resolve_target(self):
        """Test relative and absolute targets."""
        assert resolve_target("word/document.xml", "header1.xml") == "word/header1.xml"
        assert resolve_target("word/document.xml", "../customXml/a.xml") == "customXml/a.xml"
        assert resolve_target("", "/word/document.xml") == "word/document.xml"


class TestRelationships:
    """Test relationship parts."""

    def test_next_id(self):
        """Test new IDs follow the highest numeric ID."""
        rels = Relationships.parse(
            "word/document.xml",
            (
                f'<Relationships xmlns="{PKG_REL_NS}">'
                '<Relationship Id="rId3" Type="t" Target="a"/>'
                '<Relationship Id="custom" Type="t" Target="b"/>'
                '</Relationships>'
            ).encode(),
        )

        assert rels.add(IMAGE_REL, "media/x.png") == "rId4"
        assert rels.modified

    def test_external_target(self):
        """Test hyperlinks are written as external targets."""
        rels = Relationships("word/document.xml")
        rels.add(HYPERLINK_REL, "https://example.com", external=True)

        root = etree.fromstring(rels.to_xml())
        rel = root[0]

        assert rel.get("Id") == "rId1"
        assert rel.get("TargetMode") == "External"
        assert rels.items[0].is_external

    def test_strict_types(self):
        """Test strict-conformance relationship types are recognized."""
        rels = Relationships("word/document.xml")
        rels.add("http://purl.oclc.org/ooxml/officeDocument/relationships/header", "h.xml")

        header_rel = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/header"
        assert len(rels.by_type(header_rel)) == 1


class TestDocxPackage:
    """Test reading and writing packages."""

    def test_not_a_zip(self):
        """Test invalid archives raise TemplateParseError."""
        with pytest.raises(TemplateParseError, match="zip"):
            DocxPackage.from_bytes(b"not a zip")

    def test_main_document(self, docx):
        """Test the main document is found through the package relationships."""
        package = DocxPackage.from_bytes(docx.build(docx.paragraph("x")))

        assert package.main_document == "word/document.xml"

    def test_missing_part(self, docx):
        """Test reading a missing part."""
        package = DocxPackage.from_bytes(docx.build(docx.paragraph("x")))

        with pytest.raises(TemplateParseError, match="Missing part"):
            package.read("word/styles.xml")

    def test_template_parts_order(self, docx):
        """Test headers come before footers, after the main document."""
        template = docx.build(
            docx.paragraph("body"),
            headers=[docx.paragraph("h1"), docx.paragraph("h2")],
            footers=[docx.paragraph("f1")],
        )

        package = DocxPackage.from_bytes(template)

        assert package.template_parts() == [
            "word/document.xml",
            "word/header1.xml",
            "word/header2.xml",
            "word/footer1.xml",
        ]

    def test_add_image(self, docx):
        """Test images become media parts with relationships and content types."""
        package = DocxPackage.from_bytes(docx.build(docx.paragraph("x")))

        rel_id = package.resources_for("word/document.xml").add_image(b"png", ".PNG")
        output = package.to_bytes()

        assert rel_id == "rId1"
        assert "word/media/report_image1.png" in docx.part_names(output)
        rels = docx.read_part(output, "word/_rels/document.xml.rels").decode()
        assert 'Target="media/report_image1.png"' in rels
        content_types = docx.read_part(output, "[Content_Types].xml").decode()
        assert 'Extension="png"' in content_types
        assert 'ContentType="image/png"' in content_types

    def test_content_type_declared_once(self, docx):
        """Test an extension is only declared once."""
        package = DocxPackage.from_bytes(docx.build(docx.paragraph("x")))
        resources = package.resources_for("word/document.xml")

        resources.add_image(b"a", ".png")
        resources.add_image(b"b", ".png")
        content_types = docx.read_part(package.to_bytes(), "[Content_Types].xml").decode()

        assert content_types.count('Extension="png"') == 1

    def test_add_hyperlink(self, docx):
        """Test hyperlinks are registered on the part's relationships."""
        package = DocxPackage.from_bytes(docx.build(docx.paragraph("x")))

        package.resources_for("word/document.xml").add_hyperlink("https://example.com")

        rels = docx.read_part(package.to_bytes(), "word/_rels/document.xml.rels").decode()
        assert 'TargetMode="External"' in rels

    def test_drawing_ids_stay_unique(self, docx):
        """Test new drawing IDs follow those already in the document."""
        package = DocxPackage.from_bytes(docx.build(docx.paragraph("x")))
        root = parse_xml('<w:body xmlns:w="urn:w" xmlns:wp="urn:wp"><wp:docPr id="7"/></w:body>')

        package.observe_drawing_ids(root)

        assert package.next_drawing_id() == 8

    def test_unmodified_parts_round_trip(self, docx):
        """Test writing an untouched package keeps every part."""
        template = docx.build(docx.paragraph("x"), headers=[docx.paragraph("h")])
        package = DocxPackage.from_bytes(template)

        output = package.to_bytes()

        assert docx.part_names(output) == docx.part_names(template)
        assert docx.read_part(output) == docx.read_part(template)
