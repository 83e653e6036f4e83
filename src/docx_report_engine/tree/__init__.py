"""Document tree for docx report generation.

Key Components:
    TextNode / NonTextNode: Owned tree nodes with parent back-references
    parse_xml: Builds a tree from an XML part (via lxml)
    serialize: Writes a tree back to XML text
"""

from .builder import parse_xml
from .nodes import (
    Node,
    NonTextNode,
    QualifiedAttribute,
    QualifiedName,
    TextNode,
    ancestors,
    child_towards,
    clone,
    common_ancestor,
    detach,
    element,
    find_ancestor,
    insert_after,
    insert_before,
    is_descendant,
    iter_nodes,
    iter_text_nodes,
    replace_with,
)
from .serializer import serialize

__all__ = [
    "Node",
    "NonTextNode",
    "QualifiedAttribute",
    "QualifiedName",
    "TextNode",
    "ancestors",
    "child_towards",
    "clone",
    "common_ancestor",
    "detach",
    "element",
    "find_ancestor",
    "insert_after",
    "insert_before",
    "is_descendant",
    "iter_nodes",
    "iter_text_nodes",
    "parse_xml",
    "replace_with",
    "serialize",
]
