"""Docx package layer.

A ``.docx`` file is a zip of XML parts. This module reads the package,
locates the main document and its headers and footers through the
relationship parts, and writes the package back once the parts have been
rewritten, together with any media, relationships and content types added
by IMAGE and LINK commands.
"""

import io
import posixpath
import re
import zipfile
from dataclasses import dataclass
from typing import Dict, List, Optional

from lxml import etree

from docx_report_engine.mutation import ResourceRegistry
from docx_report_engine.shared import TemplateParseError, get_logger
from docx_report_engine.tree import NonTextNode, iter_nodes

CONTENT_TYPES_PART = "[Content_Types].xml"
ROOT_RELS_PART = "_rels/.rels"

PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
CT_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
REL_TYPE_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
STRICT_REL_TYPE_BASE = "http://purl.oclc.org/ooxml/officeDocument/relationships"

OFFICE_DOCUMENT_REL = f"{REL_TYPE_BASE}/officeDocument"
HEADER_REL = f"{REL_TYPE_BASE}/header"
FOOTER_REL = f"{REL_TYPE_BASE}/footer"
IMAGE_REL = f"{REL_TYPE_BASE}/image"
HYPERLINK_REL = f"{REL_TYPE_BASE}/hyperlink"

DEFAULT_MAIN_DOCUMENT = "word/document.xml"
MEDIA_DIR = "word/media"

IMAGE_CONTENT_TYPES = {
    ".png": "image/png",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
}

_REL_ID = re.compile(r"^rId(\d+)$")

logger = get_logger(__name__, component="package")


def parse_part_xml(data: bytes, part_name: str) -> etree._Element:
    """Parse a package-level XML part (relationships, content types, properties)."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)
    try:
        return etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise TemplateParseError(f"Malformed XML in {part_name}: {e}") from e


def _to_xml(root: etree._Element) -> bytes:
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)


def rels_part_for(part_name: str) -> str:
    """Name of the relationship part of ``part_name``."""
    directory, filename = posixpath.split(part_name)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


def resolve_target(source_part: str, target: str) -> str:
    """Resolve a relationship target against the part it belongs to."""
    if target.startswith("/"):
        return target.lstrip("/")
    return posixpath.normpath(posixpath.join(posixpath.dirname(source_part), target))


@dataclass
class Relationship:
    """One entry of a relationship part."""

    id: str
    type: str
    target: str
    target_mode: Optional[str] = None

    @property
    def is_external(self) -> bool:
        return self.target_mode == "External"


class Relationships:
    """Relationships of one source part."""

    def __init__(self, source_part: str, items: Optional[List[Relationship]] = None) -> None:
        self.source_part = source_part
        self.items: List[Relationship] = list(items or [])
        self.modified = False

    @classmethod
    def parse(cls, source_part: str, data: Optional[bytes]) -> "Relationships":
        if data is None:
            return cls(source_part)
        root = parse_part_xml(data, rels_part_for(source_part))
        items = [
            Relationship(
                id=el.get("Id", ""),
                type=el.get("Type", ""),
                target=el.get("Target", ""),
                target_mode=el.get("TargetMode"),
            )
            for el in root.iter(f"{{{PKG_REL_NS}}}Relationship")
        ]
        return cls(source_part, items)

    def by_type(self, rel_type: str) -> List[Relationship]:
        """Relationships of a type, accepting the strict-conformance variant."""
        suffix = rel_type.rsplit("/", 1)[-1]
        strict = f"{STRICT_REL_TYPE_BASE}/{suffix}"
        return [rel for rel in self.items if rel.type in (rel_type, strict)]

    def next_id(self) -> str:
        numbers = [
            int(match.group(1))
            for match in (_REL_ID.match(rel.id) for rel in self.items)
            if match
        ]
        return f"rId{max(numbers, default=0) + 1}"

    def add(self, rel_type: str, target: str, external: bool = False) -> str:
        """Append a relationship and return its ID."""
        rel = Relationship(
            id=self.next_id(),
            type=rel_type,
            target=target,
            target_mode="External" if external else None,
        )
        self.items.append(rel)
        self.modified = True
        return rel.id

    def to_xml(self) -> bytes:
        root = etree.Element(f"{{{PKG_REL_NS}}}Relationships", nsmap={None: PKG_REL_NS})
        for rel in self.items:
            el = etree.SubElement(root, f"{{{PKG_REL_NS}}}Relationship")
            el.set("Id", rel.id)
            el.set("Type", rel.type)
            el.set("Target", rel.target)
            if rel.target_mode:
                el.set("TargetMode", rel.target_mode)
        return _to_xml(root)


class DocxPackage:
    """In-memory docx package.

    Parts keep their original order; new parts are appended.
    """

    def __init__(self, parts: Dict[str, bytes]) -> None:
        self.parts = parts
        self._relationships: Dict[str, Relationships] = {}
        self._content_types: Optional[etree._Element] = None
        self._content_types_modified = False
        self._media_counter = 0
        self._drawing_id = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocxPackage":
        """Read a package from docx bytes.

        Raises:
            TemplateParseError: If the data is not a zip archive
        """
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                parts = {info.filename: archive.read(info.filename) for info in archive.infolist()}
        except zipfile.BadZipFile as e:
            raise TemplateParseError(f"Template is not a valid docx (zip) file: {e}") from e
        logger.debug("Read package", extra={"part_count": len(parts)})
        return cls(parts)

    def has_part(self, name: str) -> bool:
        return name in self.parts

    def read(self, name: str) -> bytes:
        """Read a part.

        Raises:
            TemplateParseError: If the part does not exist
        """
        try:
            return self.parts[name]
        except KeyError:
            raise TemplateParseError(f"Missing part in template: {name}") from None

    def write(self, name: str, data: bytes) -> None:
        self.parts[name] = data

    def relationships(self, part_name: str) -> Relationships:
        """Relationships whose source is ``part_name`` (``""`` for the package)."""
        if part_name not in self._relationships:
            rels_name = ROOT_RELS_PART if not part_name else rels_part_for(part_name)
            self._relationships[part_name] = Relationships.parse(
                part_name, self.parts.get(rels_name)
            )
        return self._relationships[part_name]

    @property
    def main_document(self) -> str:
        """Name of the main document part."""
        for rel in self.relationships("").by_type(OFFICE_DOCUMENT_REL):
            return resolve_target("", rel.target)
        if self.has_part(DEFAULT_MAIN_DOCUMENT):
            return DEFAULT_MAIN_DOCUMENT
        raise TemplateParseError("Template has no main document part")

    def header_footer_parts(self) -> List[str]:
        """Header parts followed by footer parts, in relationship order."""
        rels = self.relationships(self.main_document)
        names: List[str] = []
        for rel_type in (HEADER_REL, FOOTER_REL):
            for rel in rels.by_type(rel_type):
                name = resolve_target(self.main_document, rel.target)
                if name not in names and self.has_part(name):
                    names.append(name)
        return names

    def template_parts(self) -> List[str]:
        """Parts scanned for commands: main document, headers, footers."""
        return [self.main_document] + self.header_footer_parts()

    def ensure_default_content_type(self, extension: str, content_type: str) -> None:
        """Declare a content type for a file extension if none is declared."""
        if self._content_types is None:
            self._content_types = parse_part_xml(self.read(CONTENT_TYPES_PART), CONTENT_TYPES_PART)
        ext = extension.lstrip(".").lower()
        for default in self._content_types.iter(f"{{{CT_NS}}}Default"):
            if (default.get("Extension") or "").lower() == ext:
                return
        default = etree.Element(f"{{{CT_NS}}}Default")
        default.set("Extension", ext)
        default.set("ContentType", content_type)
        self._content_types.insert(0, default)
        self._content_types_modified = True

    def new_media_name(self, extension: str) -> str:
        while True:
            self._media_counter += 1
            name = f"{MEDIA_DIR}/report_image{self._media_counter}{extension}"
            if name not in self.parts:
                return name

    def observe_drawing_ids(self, root: NonTextNode) -> None:
        """Note the drawing IDs already used by a part so new ones stay unique."""
        for node in iter_nodes(root):
            if isinstance(node, NonTextNode) and node.tag == "wp:docPr":
                value = node.get_attribute("id", "")
                if value.isdigit():
                    self._drawing_id = max(self._drawing_id, int(value))

    def next_drawing_id(self) -> int:
        self._drawing_id += 1
        return self._drawing_id

    def resources_for(self, part_name: str) -> "PartResources":
        return PartResources(self, part_name)

    def to_bytes(self) -> bytes:
        """Write the package, including modified relationships and content types."""
        for source_part, rels in self._relationships.items():
            if rels.modified:
                name = ROOT_RELS_PART if not source_part else rels_part_for(source_part)
                self.write(name, rels.to_xml())
        if self._content_types_modified and self._content_types is not None:
            self.write(CONTENT_TYPES_PART, _to_xml(self._content_types))

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for name, data in self.parts.items():
                archive.writestr(name, data)
        return buffer.getvalue()


class PartResources(ResourceRegistry):
    """Registers media and hyperlinks on behalf of one template part."""

    def __init__(self, package: DocxPackage, part_name: str) -> None:
        self.package = package
        self.part_name = part_name

    def add_image(self, data: bytes, extension: str) -> str:
        extension = extension.lower()
        name = self.package.new_media_name(extension)
        self.package.write(name, data)
        self.package.ensure_default_content_type(
            extension, IMAGE_CONTENT_TYPES.get(extension, "application/octet-stream")
        )
        target = posixpath.relpath(name, posixpath.dirname(self.part_name) or ".")
        rel_id = self.package.relationships(self.part_name).add(IMAGE_REL, target)
        logger.debug("Added image part", extra={"part": name, "rel_id": rel_id})
        return rel_id

    def add_hyperlink(self, url: str) -> str:
        return self.package.relationships(self.part_name).add(HYPERLINK_REL, url, external=True)

    def next_drawing_id(self) -> int:
        return self.package.next_drawing_id()
