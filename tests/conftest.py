"""Shared fixtures: minimal docx packages built in memory."""

import io
import zipfile
from html import escape
from typing import Dict, List, Optional, Sequence, Union

import pytest
from lxml import etree

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
REL_TYPE_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" '
    'ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" ContentType="application/'
    'vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '</Types>'
)

ROOT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    f'<Relationships xmlns="{PKG_REL_NS}">'
    f'<Relationship Id="rId1" Type="{REL_TYPE_BASE}/officeDocument" '
    'Target="word/document.xml"/>'
    '</Relationships>'
)


class DocxFactory:
    """Builds docx templates and reads generated reports back."""

    @staticmethod
    def run(text: str, bold: bool = False) -> str:
        props = "<w:rPr><w:b/></w:rPr>" if bold else ""
        return f'<w:r>{props}<w:t xml:space="preserve">{escape(text, quote=False)}</w:t></w:r>'

    @classmethod
    def paragraph(cls, *texts: str) -> str:
        """A paragraph with one run per text."""
        return "<w:p>" + "".join(cls.run(text) for text in texts) + "</w:p>"

    @classmethod
    def table(cls, rows: Sequence[Sequence[str]]) -> str:
        """A table whose cells each hold one single-run paragraph."""
        body = "".join(
            "<w:tr>" + "".join(f"<w:tc>{cls.paragraph(cell)}</w:tc>" for cell in row) + "</w:tr>"
            for row in rows
        )
        return f"<w:tbl>{body}</w:tbl>"

    @staticmethod
    def document_xml(body: str, root: str = "w:document", container: str = "w:body") -> str:
        inner = f"<{container}>{body}</{container}>" if container else body
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<{root} xmlns:w="{W_NS}" xmlns:r="{R_NS}">{inner}</{root}>'
        )

    @classmethod
    def build(
        cls,
        *paragraphs: str,
        headers: Optional[List[str]] = None,
        footers: Optional[List[str]] = None,
        extra_parts: Optional[Dict[str, Union[str, bytes]]] = None,
    ) -> bytes:
        """Build a docx whose body is the given paragraph markup.

        Args:
            *paragraphs: Body markup (``paragraph()`` / ``table()`` output)
            headers: Body markup of header parts
            footers: Body markup of footer parts
            extra_parts: Additional parts by name
        """
        headers = headers or []
        footers = footers or []
        parts: Dict[str, Union[str, bytes]] = {
            "[Content_Types].xml": CONTENT_TYPES,
            "_rels/.rels": ROOT_RELS,
            "word/document.xml": cls.document_xml("".join(paragraphs)),
        }

        relationships = []
        for kind, bodies, root in (("header", headers, "w:hdr"), ("footer", footers, "w:ftr")):
            for index, body in enumerate(bodies, start=1):
                name = f"{kind}{index}.xml"
                parts[f"word/{name}"] = cls.document_xml(body, root=root, container="")
                relationships.append(
                    f'<Relationship Id="rId{len(relationships) + 10}" '
                    f'Type="{REL_TYPE_BASE}/{kind}" Target="{name}"/>'
                )
        if relationships:
            parts["word/_rels/document.xml.rels"] = (
                '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
                f'<Relationships xmlns="{PKG_REL_NS}">{"".join(relationships)}</Relationships>'
            )
        parts.update(extra_parts or {})

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for name, data in parts.items():
                archive.writestr(name, data)
        return buffer.getvalue()

    @staticmethod
    def read_part(docx: bytes, name: str = "word/document.xml") -> bytes:
        with zipfile.ZipFile(io.BytesIO(docx)) as archive:
            return archive.read(name)

    @staticmethod
    def part_names(docx: bytes) -> List[str]:
        with zipfile.ZipFile(io.BytesIO(docx)) as archive:
            return archive.namelist()

    @classmethod
    def paragraph_texts(cls, docx: bytes, name: str = "word/document.xml") -> List[str]:
        """Text of every paragraph of a part, in document order."""
        root = etree.fromstring(cls.read_part(docx, name))
        return [
            "".join(t.text or "" for t in p.iter(f"{{{W_NS}}}t"))
            for p in root.iter(f"{{{W_NS}}}p")
        ]

    @classmethod
    def text(cls, docx: bytes, name: str = "word/document.xml") -> str:
        """All paragraph texts joined by newlines."""
        return "\n".join(cls.paragraph_texts(docx, name))


@pytest.fixture
def docx() -> DocxFactory:
    """Factory for in-memory docx templates."""
    return DocxFactory()
