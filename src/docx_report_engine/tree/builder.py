"""Tree building from XML parts.

Converts an XML part parsed by lxml into the engine's own node model. Tags and
attributes keep their prefixed names (``w:p``, ``w:val``) because generated
markup is written with the same prefixes; namespace declarations are kept as
``xmlns`` attributes on the element that introduced them.
"""

from typing import Dict, Optional, Union

from lxml import etree

from docx_report_engine.shared import TemplateParseError, get_logger

from .nodes import NonTextNode, QualifiedAttribute, TextNode

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

logger = get_logger(__name__, component="tree_builder")


def parse_xml(data: Union[bytes, str], part_name: Optional[str] = None) -> NonTextNode:
    """Parse an XML part into a document tree.

    Args:
        data: Raw XML content
        part_name: Name of the package part, for error messages

    Returns:
        Root element of the document tree

    Raises:
        TemplateParseError: If the XML is not well-formed
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    parser = etree.XMLParser(resolve_entities=False, huge_tree=True, no_network=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        where = f" in {part_name}" if part_name else ""
        raise TemplateParseError(f"Malformed XML{where}: {e}") from e

    tree = _convert_element(root, {})
    logger.debug(
        "Built document tree",
        extra={"part_name": part_name, "root_tag": tree.tag},
    )
    return tree


def _qualified_tag(element: "etree._Element") -> str:
    qname = etree.QName(element)
    if element.prefix:
        return f"{element.prefix}:{qname.localname}"
    return qname.localname


def _convert_attributes(
    element: "etree._Element",
    parent_nsmap: Dict[Optional[str], str],
) -> Dict[str, Union[str, QualifiedAttribute]]:
    attrs: Dict[str, Union[str, QualifiedAttribute]] = {}

    for prefix, uri in element.nsmap.items():
        if parent_nsmap.get(prefix) != uri:
            attrs[f"xmlns:{prefix}" if prefix else "xmlns"] = uri

    uri_to_prefix = {uri: prefix for prefix, uri in element.nsmap.items() if prefix}
    uri_to_prefix[XML_NAMESPACE] = "xml"

    for key, value in element.attrib.items():
        qname = etree.QName(key)
        if qname.namespace is None:
            attrs[key] = value
            continue
        prefix = uri_to_prefix.get(qname.namespace, "")
        name = f"{prefix}:{qname.localname}" if prefix else qname.localname
        attrs[name] = QualifiedAttribute(
            name=name,
            prefix=prefix,
            local=qname.localname,
            uri=qname.namespace,
            value=value,
        )
    return attrs


def _convert_element(
    element: "etree._Element",
    parent_nsmap: Dict[Optional[str], str],
) -> NonTextNode:
    node = NonTextNode(
        tag=_qualified_tag(element),
        attrs=_convert_attributes(element, parent_nsmap),
    )
    if element.text:
        node.add_child(TextNode(element.text))

    for child in element:
        # Comments and processing instructions are not part of the node model
        if isinstance(child.tag, str):
            node.add_child(_convert_element(child, dict(element.nsmap)))
        if child.tail:
            node.add_child(TextNode(child.tail))
    return node
