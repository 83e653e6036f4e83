"""Hyperlink markup for LINK commands."""

from typing import Optional

from docx_report_engine.evaluation import LinkDescriptor
from docx_report_engine.tree import NonTextNode, element
from docx_report_engine.tree.ooxml import (
    HYPERLINK,
    R_NS,
    RUN,
    RUN_PROPS,
    copy_run_properties,
    text_element,
)

from .resources import ResourceRegistry

LINK_COLOR = "0000FF"


def build_hyperlink(
    link: LinkDescriptor,
    rel_id: str,
    template_run: Optional[NonTextNode] = None,
) -> NonTextNode:
    """Build a ``w:hyperlink`` holding one underlined, coloured run."""
    props = copy_run_properties(template_run) or element(RUN_PROPS)
    # w:color precedes w:u in the rPr sequence
    if props.find_child("w:color") is None:
        props.add_child(element("w:color", {"w:val": LINK_COLOR}))
    if props.find_child("w:u") is None:
        props.add_child(element("w:u", {"w:val": "single"}))

    run = element(RUN, children=[props, text_element(link.text)])
    return element(HYPERLINK, {"xmlns:r": R_NS, "r:id": rel_id}, [run])


def hyperlink_for(
    link: LinkDescriptor,
    registry: ResourceRegistry,
    template_run: Optional[NonTextNode] = None,
) -> NonTextNode:
    """Register the link's relationship and build its markup."""
    return build_hyperlink(link, registry.add_hyperlink(link.url), template_run)
