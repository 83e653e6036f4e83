"""Conversion of HTML snippets into WordprocessingML runs.

HTML commands produce markup strings; BeautifulSoup parses them and the walk
below maps bold, italic, underline and strike-through to run properties,
``<br>`` to line breaks and block elements to separate paragraphs.
"""

import re
from dataclasses import dataclass, replace
from typing import List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from docx_report_engine.tree import Node, NonTextNode, element
from docx_report_engine.tree.ooxml import (
    BREAK,
    RUN,
    RUN_PROPS,
    copy_run_properties,
    text_element,
)

BLOCK_TAGS = frozenset({
    "p", "div", "li", "blockquote", "pre", "tr", "section", "article",
    "h1", "h2", "h3", "h4", "h5", "h6",
})
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
BOLD_TAGS = frozenset({"b", "strong"}) | HEADING_TAGS
ITALIC_TAGS = frozenset({"i", "em", "cite"})
UNDERLINE_TAGS = frozenset({"u", "ins"})
STRIKE_TAGS = frozenset({"s", "strike", "del"})
SKIPPED_TAGS = frozenset({"script", "style", "head", "title"})
BULLET = "• "

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class RunFormat:
    """Character formatting inherited while walking the HTML tree."""

    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    preformatted: bool = False

    def apply(self, tag_name: str) -> "RunFormat":
        return replace(
            self,
            bold=self.bold or tag_name in BOLD_TAGS,
            italic=self.italic or tag_name in ITALIC_TAGS,
            underline=self.underline or tag_name in UNDERLINE_TAGS,
            strike=self.strike or tag_name in STRIKE_TAGS,
            preformatted=self.preformatted or tag_name == "pre",
        )


class _BlockBuilder:
    """Accumulates runs into paragraph-sized blocks."""

    def __init__(self, template_run: Optional[NonTextNode]) -> None:
        self.template_run = template_run
        self.blocks: List[List[Node]] = [[]]

    def new_block(self) -> None:
        if self.blocks[-1]:
            self.blocks.append([])

    def _properties(self, fmt: RunFormat) -> Optional[NonTextNode]:
        props = copy_run_properties(self.template_run)
        flags = [
            (fmt.bold, "w:b", {}),
            (fmt.italic, "w:i", {}),
            (fmt.strike, "w:strike", {}),
            (fmt.underline, "w:u", {"w:val": "single"}),
        ]
        for enabled, tag, attrs in flags:
            if not enabled:
                continue
            if props is None:
                props = element(RUN_PROPS)
            if props.find_child(tag) is None:
                props.add_child(element(tag, attrs))
        return props

    def _run(self, content: Node, fmt: RunFormat) -> NonTextNode:
        run = element(RUN)
        props = self._properties(fmt)
        if props is not None:
            run.add_child(props)
        run.add_child(content)
        return run

    def add_text(self, text: str, fmt: RunFormat) -> None:
        if not fmt.preformatted:
            text = _WHITESPACE.sub(" ", text)
            if not self.blocks[-1]:
                text = text.lstrip()
        if text:
            self.blocks[-1].append(self._run(text_element(text), fmt))

    def add_break(self, fmt: RunFormat) -> None:
        self.blocks[-1].append(self._run(element(BREAK), fmt))


def _list_prefix(tag: Tag) -> str:
    parent = tag.parent
    if isinstance(parent, Tag) and parent.name == "ol":
        position = len(tag.find_previous_siblings("li")) + 1
        return f"{position}. "
    return BULLET


def _walk(node: Tag, fmt: RunFormat, builder: _BlockBuilder) -> None:
    for child in node.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            builder.add_text(str(child), fmt)
            continue
        if not isinstance(child, Tag) or child.name in SKIPPED_TAGS:
            continue

        name = child.name.lower()
        if name == "br":
            builder.add_break(fmt)
            continue

        is_block = name in BLOCK_TAGS
        if is_block:
            builder.new_block()
            if name == "li":
                builder.add_text(_list_prefix(child), replace(fmt, preformatted=True))
        _walk(child, fmt.apply(name), builder)
        if is_block:
            builder.new_block()


def html_to_blocks(markup: str, template_run: Optional[NonTextNode] = None) -> List[List[Node]]:
    """Convert an HTML snippet into blocks of runs.

    Args:
        markup: HTML snippet
        template_run: Run whose formatting the generated runs inherit

    Returns:
        One list of runs per paragraph; at least one (possibly empty) block
    """
    soup = BeautifulSoup(markup, "html.parser")
    builder = _BlockBuilder(template_run)
    _walk(soup, RunFormat(), builder)

    blocks = [block for block in builder.blocks if block]
    for block in blocks:
        # Trailing whitespace left over from collapsed source formatting
        last = block[-1]
        text_el = last.find_child("w:t") if isinstance(last, NonTextNode) else None
        if text_el is not None and text_el.children:
            text_node = text_el.children[0]
            text_node.text = text_node.text.rstrip() or text_node.text
    return blocks or [[]]
