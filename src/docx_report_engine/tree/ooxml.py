"""WordprocessingML names and small markup helpers."""

from typing import List, Optional

from .nodes import Node, NonTextNode, TextNode, clone, element

# Element tags, with the prefixes Word writes
PARAGRAPH = "w:p"
PARAGRAPH_PROPS = "w:pPr"
RUN = "w:r"
RUN_PROPS = "w:rPr"
TEXT = "w:t"
BREAK = "w:br"
TABLE = "w:tbl"
TABLE_ROW = "w:tr"
TABLE_CELL = "w:tc"
HYPERLINK = "w:hyperlink"
DRAWING = "w:drawing"
PROOF_ERROR = "w:proofErr"
SECTION_PROPS = "w:sectPr"
BODY = "w:body"

# Namespaces
W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
PIC_NS = "http://schemas.openxmlformats.org/drawingml/2006/picture"
ASVG_NS = "http://schemas.microsoft.com/office/drawing/2016/SVG/main"

XML_SPACE = "xml:space"


def text_element(text: str) -> NonTextNode:
    """Build a ``w:t`` element that preserves surrounding whitespace."""
    return element(TEXT, {XML_SPACE: "preserve"}, [TextNode(text)])


def run_properties(run: NonTextNode) -> Optional[NonTextNode]:
    return run.find_child(RUN_PROPS)


def copy_run_properties(run: Optional[NonTextNode]) -> Optional[NonTextNode]:
    """Deep-copy the ``w:rPr`` of a run, if it has one."""
    if run is None:
        return None
    props = run_properties(run)
    if props is None:
        return None
    copied, _ = clone(props)
    return copied  # type: ignore[return-value]


def make_run(content: List[Node], template_run: Optional[NonTextNode] = None) -> NonTextNode:
    """Build a run holding ``content``, formatted like ``template_run``."""
    run = element(RUN)
    props = copy_run_properties(template_run)
    if props is not None:
        run.add_child(props)
    for node in content:
        run.add_child(node)
    return run


def text_with_breaks(text: str) -> List[Node]:
    """Run content for ``text`` with each newline turned into a ``w:br``."""
    content: List[Node] = []
    for index, line in enumerate(text.split("\n")):
        if index:
            content.append(element(BREAK))
        if line or index == 0:
            content.append(text_element(line))
    return content


def _is_empty_run(run: NonTextNode) -> bool:
    for child in run.children:
        if isinstance(child, TextNode):
            if child.text.strip():
                return False
        elif child.tag == TEXT:
            if child.text_content:
                return False
        elif child.tag != RUN_PROPS:
            return False
    return True


def is_empty_paragraph(paragraph: NonTextNode) -> bool:
    """Check whether a paragraph holds nothing besides its properties.

    Runs without text and proofing marks count as empty.
    """
    for child in paragraph.children:
        if isinstance(child, TextNode):
            if child.text.strip():
                return False
        elif child.tag == RUN:
            if not _is_empty_run(child):
                return False
        elif child.tag not in (PARAGRAPH_PROPS, PROOF_ERROR):
            return False
    return True


def has_section_properties(paragraph: NonTextNode) -> bool:
    """Check whether a paragraph carries a section break."""
    props = paragraph.find_child(PARAGRAPH_PROPS)
    return props is not None and props.find_child(SECTION_PROPS) is not None
