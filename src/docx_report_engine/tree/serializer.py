"""XML serialization of document trees.

Text between a pair of literal-XML delimiters is written verbatim; this is how
command results inject raw markup (for example ``||<w:br/>||``).
"""

from typing import List

from .nodes import Node, NonTextNode, QualifiedAttribute, TextNode

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'


def escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attribute(value: str) -> str:
    return escape_text(value).replace('"', "&quot;")


def _write_text(text: str, literal_xml_delimiter: str, parts: List[str]) -> None:
    segments = text.split(literal_xml_delimiter) if literal_xml_delimiter else [text]
    if len(segments) % 2 == 0:
        # An unpaired trailing delimiter is plain text
        segments[-2:] = [segments[-2] + literal_xml_delimiter + segments[-1]]
    for index, segment in enumerate(segments):
        # Odd segments sit between a pair of delimiters
        parts.append(segment if index % 2 else escape_text(segment))


def _write_node(node: Node, literal_xml_delimiter: str, parts: List[str]) -> None:
    if isinstance(node, TextNode):
        _write_text(node.text, literal_xml_delimiter, parts)
        return

    parts.append(f"<{node.tag}")
    for name, value in node.attrs.items():
        raw = value.value if isinstance(value, QualifiedAttribute) else value
        parts.append(f' {name}="{escape_attribute(raw)}"')

    if not node.children:
        parts.append("/>")
        return

    parts.append(">")
    for child in node.children:
        _write_node(child, literal_xml_delimiter, parts)
    parts.append(f"</{node.tag}>")


def serialize(
    root: NonTextNode,
    literal_xml_delimiter: str = "||",
    xml_declaration: bool = True,
) -> str:
    """Serialize a document tree to XML text.

    Args:
        root: Root element to serialize
        literal_xml_delimiter: Delimiter marking verbatim XML inside text
        xml_declaration: Whether to prepend the XML declaration

    Returns:
        XML document as a string
    """
    parts: List[str] = [XML_DECLARATION] if xml_declaration else []
    _write_node(root, literal_xml_delimiter, parts)
    return "".join(parts)
