"""Tree mutator.

Applies command results to the document tree in place: text insertion, marker
removal with paragraph pruning, block spans for FOR/IF, and the splicing of
images, hyperlinks and HTML fragments.
"""

from typing import Any, Dict, List, Optional, Tuple

from docx_report_engine.commands import CommandNode, CommandType
from docx_report_engine.evaluation import (
    ImageDescriptor,
    LinkDescriptor,
    to_html,
    to_image,
    to_link,
    to_text,
)
from docx_report_engine.shared import CorrelationLogger, InternalError, RunConfig, get_logger
from docx_report_engine.tree import (
    Node,
    NonTextNode,
    TextNode,
    child_towards,
    clone,
    common_ancestor,
    detach,
    element,
    find_ancestor,
    insert_after,
    insert_before,
    replace_with,
)
from docx_report_engine.tree.ooxml import (
    BREAK,
    PARAGRAPH,
    PARAGRAPH_PROPS,
    RUN,
    RUN_PROPS,
    TABLE,
    TABLE_CELL,
    TABLE_ROW,
    TEXT,
    has_section_properties,
    is_empty_paragraph,
    make_run,
    text_element,
    text_with_breaks,
)

from .html import html_to_blocks
from .images import image_run_content
from .links import hyperlink_for
from .resources import ResourceRegistry

# Span elements that can host a substituted run or paragraph
_RUN_LEVEL = (RUN, TEXT)
_BLOCK_LEVEL = (PARAGRAPH, TABLE)


def _outer(anchor: Node) -> Node:
    """Node to replace when splicing markup at an anchor.

    Anchors are runs; a text node anchor (text outside any run) is represented
    by its ``w:t`` element, which it must not share with other text.
    """
    if isinstance(anchor, TextNode):
        if anchor.parent is None:
            raise InternalError("Command anchor is detached from the tree")
        if len(anchor.parent.children) != 1:
            raise InternalError("Cannot replace text shared with other content")
        return anchor.parent
    return anchor


def _template_run(anchor: Node) -> Optional[NonTextNode]:
    if isinstance(anchor, NonTextNode) and anchor.tag == RUN:
        return anchor
    return None


class TreeMutator:
    """Rewrites one part's tree with command results.

    Args:
        config: Run configuration (output and nullish handling)
        registry: Resource registry of the part, needed by IMAGE and LINK
        logger: Correlation logger of the invocation
    """

    def __init__(
        self,
        config: RunConfig,
        registry: Optional[ResourceRegistry] = None,
        logger: Optional[CorrelationLogger] = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.logger = logger or get_logger(__name__, component="mutator")
        self.images_added = 0
        self.links_added = 0

    # Text

    def insert_text(self, anchor: Node, text: str) -> None:
        """Replace the anchor's content with ``text``."""
        if isinstance(anchor, TextNode):
            anchor.text = text
            return
        if self.config.output.process_line_breaks and "\n" in text:
            content = text_with_breaks(text)
        else:
            content = [text_element(text)]
        self._replace_run_content(anchor, content)

    def _replace_run_content(self, run: NonTextNode, content: List[Node]) -> None:
        for child in list(run.children):
            if isinstance(child, TextNode) or child.tag != RUN_PROPS:
                run.remove_child(child)
        for node in content:
            run.add_child(node)

    # Removal and pruning

    def remove_marker(self, anchor: Node) -> None:
        """Remove a command that leaves no output, pruning what it empties."""
        paragraph = find_ancestor(anchor, PARAGRAPH)
        detach(anchor)
        if paragraph is not None:
            self.prune(paragraph)

    def prune(self, node: NonTextNode) -> None:
        """Remove containers emptied by command removal, walking upwards.

        An empty paragraph goes unless it is the last one of a table cell or
        holds a section break; a table without rows goes; a cell left without
        block content gets an empty paragraph back.
        """
        current: Optional[NonTextNode] = node
        while current is not None and current.parent is not None:
            parent = current.parent
            if current.tag == PARAGRAPH:
                if not is_empty_paragraph(current) or has_section_properties(current):
                    return
                if parent.tag == TABLE_CELL and len(parent.find_children(PARAGRAPH)) == 1:
                    return
                detach(current)
            elif current.tag == TABLE:
                if current.find_child(TABLE_ROW) is not None:
                    return
                detach(current)
            elif current.tag == TABLE_CELL:
                if current.find_child(PARAGRAPH) is None and current.find_child(TABLE) is None:
                    current.add_child(element(PARAGRAPH))
                return
            else:
                return
            current = parent

    # Block spans

    def block_span(self, node: CommandNode) -> Tuple[NonTextNode, List[Node]]:
        """Locate the sibling range covered by a FOR or IF block.

        The range lies under the lowest common ancestor of the opening and
        closing anchors. When that ancestor is a table row, the whole row
        is the range.

        Raises:
            InternalError: If the block is not linked or its anchors are
                not ordered siblings
        """
        if node.end_anchor is None:
            raise InternalError(f"Block command has no end marker: {node.raw}")
        start, end = node.anchor, node.end_anchor
        ancestor = common_ancestor(start, end)
        if ancestor is None or ancestor is start or ancestor is end:
            raise InternalError(f"Block anchors are not siblings: {node.raw}")

        if ancestor.tag == TABLE_ROW and ancestor.parent is not None:
            return ancestor.parent, [ancestor]

        first = child_towards(ancestor, start)
        last = child_towards(ancestor, end)
        first_index = ancestor.index_of(first)
        last_index = ancestor.index_of(last)
        if first_index > last_index:
            raise InternalError(f"Block end precedes its start: {node.raw}")
        return ancestor, list(ancestor.children[first_index:last_index + 1])

    def clone_span(self, span: List[Node]) -> Tuple[List[Node], Dict[int, Node]]:
        """Insert a copy of ``span`` before it and return the copies.

        Returns:
            The inserted copies and the combined ``id(original) -> copy``
            mapping
        """
        copies: List[Node] = []
        mapping: Dict[int, Node] = {}
        for original in span:
            copied, nodes = clone(original)
            mapping.update(nodes)
            insert_before(span[0], copied)
            copies.append(copied)
        return copies, mapping

    def remove_span(self, parent: NonTextNode, span: List[Node]) -> None:
        for node in span:
            detach(node)
        self.prune(parent)

    def substitute_span(self, parent: NonTextNode, span: List[Node], text: str) -> None:
        """Replace a failed block with substitute text."""
        if text and span:
            first = span[0]
            template = first if isinstance(first, NonTextNode) and first.tag == RUN else None
            if isinstance(first, NonTextNode) and first.tag in _BLOCK_LEVEL:
                insert_before(first, element(PARAGRAPH, children=[make_run([text_element(text)])]))
            elif isinstance(first, TextNode) or first.tag in _RUN_LEVEL:
                insert_before(first, make_run([text_element(text)], template))
            else:
                self.logger.warning(
                    "Cannot place substitute text for block",
                    extra={"container": parent.tag},
                )
        self.remove_span(parent, span)

    # Command results

    def apply(self, node: CommandNode, result: Any) -> None:
        """Write the result of a non-block command into the tree.

        Raises:
            CommandExecutionError: If the result does not suit the command
            InternalError: For block commands or unknown command kinds
        """
        raw = node.raw
        reject_nullish = self.config.errors.reject_nullish
        kind = node.type

        if kind is CommandType.INS:
            self.insert_text(node.anchor, to_text(result, raw, reject_nullish))
        elif kind in (CommandType.EXEC, CommandType.CALL):
            if self.config.output.exec_emits_result and result is not None:
                self.insert_text(node.anchor, to_text(result, raw))
            else:
                self.remove_marker(node.anchor)
        elif kind is CommandType.IMAGE:
            image = to_image(result, raw, reject_nullish)
            if image is None:
                self.remove_marker(node.anchor)
            else:
                self._splice_image(node.anchor, image)
        elif kind is CommandType.LINK:
            link = to_link(result, raw, reject_nullish)
            if link is None:
                self.remove_marker(node.anchor)
            else:
                self._splice_link(node.anchor, link)
        elif kind is CommandType.HTML:
            markup = to_html(result, raw, reject_nullish)
            if markup is None:
                self.remove_marker(node.anchor)
            else:
                self._splice_html(node.anchor, markup)
        elif kind in (
            CommandType.QUERY,
            CommandType.ALIAS,
            CommandType.CMD_NODE,
            CommandType.END_FOR,
            CommandType.END_IF,
        ):
            self.remove_marker(node.anchor)
        else:
            raise InternalError(f"Cannot apply {kind.value} command: {raw}")

    def _require_registry(self) -> ResourceRegistry:
        if self.registry is None:
            raise InternalError("No resource registry for this part")
        return self.registry

    def _splice_image(self, anchor: Node, image: ImageDescriptor) -> None:
        content = image_run_content(image, self._require_registry())
        target = _outer(anchor)
        if isinstance(target, NonTextNode) and target.tag == RUN:
            self._replace_run_content(target, content)
        else:
            replace_with(target, [make_run(content)])
        self.images_added += 1

    def _splice_link(self, anchor: Node, link: LinkDescriptor) -> None:
        hyperlink = hyperlink_for(link, self._require_registry(), _template_run(anchor))
        replace_with(_outer(anchor), [hyperlink])
        self.links_added += 1

    def _splice_html(self, anchor: Node, markup: str) -> None:
        target = _outer(anchor)
        blocks = html_to_blocks(markup, _template_run(anchor))
        if not blocks[0]:
            self.remove_marker(anchor)
            return

        paragraph = target.parent
        if len(blocks) == 1 or paragraph is None or paragraph.tag != PARAGRAPH:
            runs: List[Node] = []
            for index, block in enumerate(blocks):
                if index:
                    runs.append(make_run([element(BREAK)]))
                runs.extend(block)
            replace_with(target, runs)
            return

        # Split the host paragraph: the first block stays in it, the others
        # become new paragraphs and the runs after the command move to the last
        index = paragraph.index_of(target)
        tail = paragraph.children[index + 1:]
        for node in [target] + tail:
            paragraph.remove_child(node)
        for run in blocks[0]:
            paragraph.add_child(run)

        props = paragraph.find_child(PARAGRAPH_PROPS)
        previous = paragraph
        for block in blocks[1:]:
            new_paragraph = element(PARAGRAPH)
            if props is not None:
                new_paragraph.add_child(clone(props)[0])
            for run in block:
                new_paragraph.add_child(run)
            insert_after(previous, new_paragraph)
            previous = new_paragraph
        for node in tail:
            previous.add_child(node)
