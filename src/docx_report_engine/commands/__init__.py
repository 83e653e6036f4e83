"""Command scanning and linking.

Key Components:
    scan_document: Finds and classifies delimited commands in a part's tree
    link: Builds the validated, nested command tree
    CommandType: The closed set of built-in command kinds
"""

from .linker import AliasTable, CommandNode, CommandTree, link
from .scanner import ScannedCommand, scan_document
from .segments import Segment, SegmentKind, split_segments
from .types import (
    BUILT_IN_COMMANDS,
    CommandSummary,
    CommandType,
    RawCommand,
    classify,
)

__all__ = [
    "AliasTable",
    "BUILT_IN_COMMANDS",
    "CommandNode",
    "CommandSummary",
    "CommandTree",
    "CommandType",
    "RawCommand",
    "ScannedCommand",
    "Segment",
    "SegmentKind",
    "classify",
    "link",
    "scan_document",
    "split_segments",
]
