"""Command scanner.

Finds delimited commands in the run text of a document tree, in document
order, and classifies each one against the keyword table.
"""

from dataclasses import dataclass
from typing import List

from docx_report_engine.shared import DelimiterConfig, get_logger
from docx_report_engine.tree import Node, NonTextNode, TextNode, iter_text_nodes
from docx_report_engine.tree.ooxml import RUN

from .preprocess import is_document_text, normalize_runs
from .segments import SegmentKind, split_segments
from .types import RawCommand, classify

logger = get_logger(__name__, component="scanner")


@dataclass(eq=False)
class ScannedCommand:
    """A classified command plus the tree node it occupies.

    Attributes:
        command: The classified command
        anchor: Run holding the command (or the text node, outside runs)
        text_node: Text node holding the delimited command text
    """

    command: RawCommand
    anchor: Node
    text_node: TextNode


def anchor_for(text_node: TextNode) -> Node:
    """Return the node that represents a command in the tree."""
    text_el = text_node.parent
    if text_el is not None and text_el.parent is not None and text_el.parent.tag == RUN:
        return text_el.parent
    return text_node


def scan_document(
    root: NonTextNode,
    delimiters: DelimiterConfig,
    normalize: bool = True,
) -> List[ScannedCommand]:
    """Scan a part's tree for commands.

    Args:
        root: Root of the part's document tree
        delimiters: Command and literal-XML delimiters
        normalize: Merge split commands and isolate them in their own runs
            first; the tree is modified in place

    Returns:
        Commands in document order

    Raises:
        CommandSyntaxError: If a command delimiter is never closed
    """
    if normalize:
        normalize_runs(root, delimiters)

    scanned: List[ScannedCommand] = []
    for text_node in iter_text_nodes(root):
        if not is_document_text(text_node) or delimiters.start not in text_node.text:
            continue
        for segment in split_segments(text_node.text, delimiters):
            if segment.kind is SegmentKind.COMMAND:
                scanned.append(
                    ScannedCommand(
                        command=classify(segment.inner),
                        anchor=anchor_for(text_node),
                        text_node=text_node,
                    )
                )

    logger.debug("Scanned commands", extra={"command_count": len(scanned)})
    return scanned
