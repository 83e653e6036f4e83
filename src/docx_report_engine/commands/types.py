"""Command kinds and scanned command records."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple


class CommandType(Enum):
    """The closed set of built-in template commands."""

    QUERY = "QUERY"
    CMD_NODE = "CMD_NODE"
    ALIAS = "ALIAS"
    FOR = "FOR"
    END_FOR = "END-FOR"
    IF = "IF"
    END_IF = "END-IF"
    INS = "INS"
    EXEC = "EXEC"
    CALL = "CALL"
    IMAGE = "IMAGE"
    LINK = "LINK"
    HTML = "HTML"


BUILT_IN_COMMANDS: Tuple[str, ...] = tuple(kind.value for kind in CommandType)

# Keyword table, read-only for the lifetime of the process
KEYWORDS: Mapping[str, CommandType] = MappingProxyType(
    {kind.value: kind for kind in CommandType}
)

BLOCK_OPENERS: FrozenSet[CommandType] = frozenset({CommandType.FOR, CommandType.IF})
BLOCK_CLOSERS: Mapping[CommandType, CommandType] = MappingProxyType({
    CommandType.END_FOR: CommandType.FOR,
    CommandType.END_IF: CommandType.IF,
})

# Commands that only shape the template and leave no output behind
MARKER_COMMANDS: FrozenSet[CommandType] = frozenset({
    CommandType.QUERY,
    CommandType.ALIAS,
    CommandType.CMD_NODE,
    CommandType.END_FOR,
    CommandType.END_IF,
})

INS_SHORTHAND = "="
EXEC_SHORTHAND = "!"
ALIAS_SHORTHAND = "*"


@dataclass(frozen=True)
class RawCommand:
    """A classified command as it appears in the template.

    Attributes:
        raw: Full text between the delimiters, stripped
        type: Classified command kind
        code: Expression or code payload following the keyword
        alias_ref: Alias name for ``*name`` references awaiting expansion
    """

    raw: str
    type: CommandType
    code: str
    alias_ref: Optional[str] = None

    @property
    def is_block_opener(self) -> bool:
        return self.type in BLOCK_OPENERS

    @property
    def is_block_closer(self) -> bool:
        return self.type in BLOCK_CLOSERS

    def to_summary(self) -> "CommandSummary":
        return CommandSummary(raw=self.raw, type=self.type.value, code=self.code)


@dataclass(frozen=True)
class CommandSummary:
    """Read-only listing entry returned by ``list_commands``."""

    raw: str
    type: str
    code: str

    def to_dict(self) -> Dict[str, str]:
        return {"raw": self.raw, "type": self.type, "code": self.code}


def split_keyword(text: str) -> Tuple[str, str]:
    """Split command text into its leading token and the remainder."""
    parts = text.split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1].strip() if len(parts) > 1 else ""


def classify(text: str, raw: Optional[str] = None) -> RawCommand:
    """Classify the text found between a pair of command delimiters.

    The leading token is matched case-insensitively against the keyword
    table. ``=expr`` and ``!expr`` are shorthands for INS and EXEC, ``*name``
    references an alias. Anything else is an INS of the whole text.

    Args:
        text: Command text without delimiters
        raw: Raw text to record, when ``text`` is an alias expansion

    Returns:
        Classified command
    """
    stripped = text.strip()
    raw = stripped if raw is None else raw

    if stripped.startswith(INS_SHORTHAND):
        return RawCommand(raw, CommandType.INS, stripped[1:].strip())
    if stripped.startswith(EXEC_SHORTHAND):
        return RawCommand(raw, CommandType.EXEC, stripped[1:].strip())
    if stripped.startswith(ALIAS_SHORTHAND):
        name = stripped[1:].strip()
        return RawCommand(raw, CommandType.INS, "", alias_ref=name)

    token, rest = split_keyword(stripped)
    kind = KEYWORDS.get(token.upper())
    if kind is None:
        return RawCommand(raw, CommandType.INS, stripped)
    return RawCommand(raw, kind, rest)
