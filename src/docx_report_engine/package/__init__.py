"""Docx package (zip) handling.

Key Components:
    DocxPackage: Reads and writes the parts of a docx file
    PartResources: Media and hyperlink registration for one part
    read_metadata: Document statistics and core properties
"""

from .docx import (
    DocxPackage,
    PartResources,
    Relationship,
    Relationships,
    rels_part_for,
    resolve_target,
)
from .metadata import DocumentMetadata, read_metadata

__all__ = [
    "DocumentMetadata",
    "DocxPackage",
    "PartResources",
    "Relationship",
    "Relationships",
    "read_metadata",
    "rels_part_for",
    "resolve_target",
]
