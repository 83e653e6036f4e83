"""Tree mutation for command results.

Key Components:
    TreeMutator: Applies command results and block spans to a part's tree
    ResourceRegistry: Package-side registration of media and hyperlinks
    html_to_blocks: HTML snippet to WordprocessingML runs
"""

from .html import html_to_blocks
from .images import build_drawing, image_run_content
from .links import build_hyperlink, hyperlink_for
from .mutator import TreeMutator
from .resources import ResourceRegistry

__all__ = [
    "ResourceRegistry",
    "TreeMutator",
    "build_drawing",
    "build_hyperlink",
    "html_to_blocks",
    "hyperlink_for",
    "image_run_content",
]
