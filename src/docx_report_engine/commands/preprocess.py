"""Normalization of command text spread across runs.

Word freely splits a paragraph's text over several runs, so a single command
such as ``+++INS name+++`` can end up in three ``w:t`` elements. Before
scanning, every command (and literal-XML span) is moved into the text node
where it starts, and each command is then isolated in a run of its own. That
run is the command's anchor in the document tree.
"""

from typing import Dict, List

from docx_report_engine.shared import DelimiterConfig, get_logger
from docx_report_engine.tree import (
    NonTextNode,
    TextNode,
    element,
    find_ancestor,
    iter_text_nodes,
    replace_with,
)
from docx_report_engine.tree.ooxml import (
    PARAGRAPH,
    RUN,
    TEXT,
    XML_SPACE,
    copy_run_properties,
    run_properties,
    text_element,
)

from .segments import Segment, SegmentKind, split_segments

logger = get_logger(__name__, component="preprocess")

_MERGED_KINDS = (SegmentKind.COMMAND, SegmentKind.LITERAL_XML)


def is_document_text(node: TextNode) -> bool:
    """Check whether a text node is run text (inside ``w:t``)."""
    return node.parent is not None and node.parent.tag == TEXT


def group_by_paragraph(root: NonTextNode) -> List[List[TextNode]]:
    """Group run text nodes by their nearest paragraph, in document order.

    Text outside any paragraph forms a group of its own.
    """
    groups: Dict[int, List[TextNode]] = {}
    for node in iter_text_nodes(root):
        if not is_document_text(node):
            continue
        paragraph = find_ancestor(node, PARAGRAPH)
        key = id(paragraph) if paragraph is not None else id(node)
        groups.setdefault(key, []).append(node)
    return list(groups.values())


def merge_split_commands(nodes: List[TextNode], delimiters: DelimiterConfig) -> bool:
    """Move every command's characters into the node where it starts.

    Args:
        nodes: Text nodes of one paragraph, in document order
        delimiters: Command and literal-XML delimiters

    Returns:
        True if any text moved between nodes

    Raises:
        CommandSyntaxError: If a command is not closed within the paragraph
    """
    full = "".join(node.text for node in nodes)
    if delimiters.start not in full and delimiters.literal_xml not in full:
        return False

    owners: List[int] = []
    for index, node in enumerate(nodes):
        owners.extend([index] * len(node.text))

    changed = False
    for segment in split_segments(full, delimiters):
        if segment.kind not in _MERGED_KINDS:
            continue
        first = owners[segment.start]
        for offset in range(segment.start, segment.end):
            if owners[offset] != first:
                owners[offset] = first
                changed = True

    if not changed:
        return False

    texts: List[List[str]] = [[] for _ in nodes]
    for offset, char in enumerate(full):
        texts[owners[offset]].append(char)
    for node, chars in zip(nodes, texts):
        node.text = "".join(chars)
        if node.parent is not None:
            node.parent.attrs[XML_SPACE] = "preserve"
    return True


def _is_filler(node) -> bool:
    return isinstance(node, TextNode) and not node.text.strip()


def _run_like(run: NonTextNode, content: List) -> NonTextNode:
    new_run = element(RUN, dict(run.attrs))
    props = copy_run_properties(run)
    if props is not None:
        new_run.add_child(props)
    for node in content:
        new_run.add_child(node)
    return new_run


def _split_run(run: NonTextNode, text_el: NonTextNode, segments: List[Segment]) -> None:
    props = run_properties(run)
    index = run.index_of(text_el)
    before = [c for c in run.children[:index] if c is not props]
    after = [c for c in run.children[index + 1:] if c is not props]

    new_runs = []
    if before and not all(_is_filler(c) for c in before):
        new_runs.append(_run_like(run, before))
    for segment in segments:
        new_runs.append(_run_like(run, [text_element(segment.text)]))
    if after and not all(_is_filler(c) for c in after):
        new_runs.append(_run_like(run, after))

    run.children = []
    replace_with(run, new_runs)


def _run_holds_only(run: NonTextNode, text_el: NonTextNode) -> bool:
    props = run_properties(run)
    return all(
        child is text_el or child is props or _is_filler(child)
        for child in run.children
    )


def isolate_commands(nodes: List[TextNode], delimiters: DelimiterConfig) -> int:
    """Give every command a run (or, outside runs, a text node) of its own.

    Returns:
        Number of text nodes that were split
    """
    splits = 0
    for text_node in nodes:
        if delimiters.start not in text_node.text:
            continue
        segments = split_segments(text_node.text, delimiters)
        if not any(seg.kind is SegmentKind.COMMAND for seg in segments):
            continue

        text_el = text_node.parent
        run = text_el.parent if text_el is not None else None
        if run is not None and run.tag == RUN:
            if len(segments) == 1 and _run_holds_only(run, text_el):
                continue
            _split_run(run, text_el, segments)
        else:
            if len(segments) == 1:
                continue
            replace_with(text_node, [TextNode(seg.text) for seg in segments])
        splits += 1
    return splits


def normalize_runs(root: NonTextNode, delimiters: DelimiterConfig) -> None:
    """Prepare a part's tree so each command sits alone in one node."""
    merged = 0
    splits = 0
    for group in group_by_paragraph(root):
        if merge_split_commands(group, delimiters):
            merged += 1
        splits += isolate_commands(group, delimiters)
    logger.debug(
        "Normalized command runs",
        extra={"paragraphs_merged": merged, "nodes_split": splits},
    )
