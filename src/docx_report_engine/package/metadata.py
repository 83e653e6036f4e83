"""Document metadata from the ``docProps`` parts."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from lxml import etree

from .docx import DocxPackage, parse_part_xml

APP_PROPERTIES_PART = "docProps/app.xml"
CORE_PROPERTIES_PART = "docProps/core.xml"

NAMESPACES = {
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
}

# field -> element path
_APP_INTEGERS = {
    "pages": "ep:Pages",
    "words": "ep:Words",
    "characters": "ep:Characters",
    "lines": "ep:Lines",
    "paragraphs": "ep:Paragraphs",
}
_APP_STRINGS = {
    "company": "ep:Company",
    "template": "ep:Template",
}
_CORE_STRINGS = {
    "title": "dc:title",
    "subject": "dc:subject",
    "creator": "dc:creator",
    "description": "dc:description",
    "last_modified_by": "cp:lastModifiedBy",
    "revision": "cp:revision",
    "last_printed": "cp:lastPrinted",
    "created": "dcterms:created",
    "modified": "dcterms:modified",
    "category": "cp:category",
}


@dataclass
class DocumentMetadata:
    """Statistics and properties Word stores with a document.

    Every field is None when the document does not record it.
    """

    pages: Optional[int] = None
    words: Optional[int] = None
    characters: Optional[int] = None
    lines: Optional[int] = None
    paragraphs: Optional[int] = None
    company: Optional[str] = None
    template: Optional[str] = None
    title: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    description: Optional[str] = None
    last_modified_by: Optional[str] = None
    revision: Optional[str] = None
    last_printed: Optional[str] = None
    created: Optional[str] = None
    modified: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _text(root: Optional[etree._Element], path: str) -> Optional[str]:
    if root is None:
        return None
    found = root.find(path, NAMESPACES)
    if found is None or found.text is None:
        return None
    return found.text


def _integer(root: Optional[etree._Element], path: str) -> Optional[int]:
    value = _text(root, path)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def read_metadata(package: DocxPackage) -> DocumentMetadata:
    """Extract metadata from an opened package."""
    app = (
        parse_part_xml(package.read(APP_PROPERTIES_PART), APP_PROPERTIES_PART)
        if package.has_part(APP_PROPERTIES_PART) else None
    )
    core = (
        parse_part_xml(package.read(CORE_PROPERTIES_PART), CORE_PROPERTIES_PART)
        if package.has_part(CORE_PROPERTIES_PART) else None
    )

    values: Dict[str, Any] = {}
    for name, path in _APP_INTEGERS.items():
        values[name] = _integer(app, path)
    for name, path in _APP_STRINGS.items():
        values[name] = _text(app, path)
    for name, path in _CORE_STRINGS.items():
        values[name] = _text(core, path)
    return DocumentMetadata(**values)
