"""Command linker.

Turns the flat scan into a properly nested command tree. Block commands (FOR,
IF) are matched against their END markers with an explicit stack, aliases are
registered and expanded in document order, and every structural problem is
raised immediately: a template that fails here is unusable as a whole.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from docx_report_engine.shared import CommandSyntaxError, InvalidCommandError, get_logger
from docx_report_engine.tree import Node

from .scanner import ScannedCommand
from .types import BLOCK_CLOSERS, CommandType, RawCommand, classify, split_keyword

FOR_PATTERN = re.compile(r"^(\S+)\s+in\s+(.+)$", re.IGNORECASE | re.DOTALL)
DEFINITION_PATTERN = re.compile(r"^(\S+)\s+(.+)$", re.DOTALL)

logger = get_logger(__name__, component="linker")


class AliasTable:
    """Aliases (``ALIAS name <command>``) and named code (``CMD_NODE name <code>``)."""

    def __init__(self) -> None:
        self.aliases: Dict[str, str] = {}
        self.nodes: Dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        return name in self.aliases or name in self.nodes

    def define(self, command: RawCommand) -> str:
        """Register an ALIAS or CMD_NODE command, returning the defined name."""
        match = DEFINITION_PATTERN.match(command.code)
        if not match:
            raise InvalidCommandError(f"Invalid {command.type.value} command", command.raw)
        name, body = match.group(1), match.group(2).strip()
        if command.type is CommandType.ALIAS:
            self.aliases[name] = body
        else:
            self.nodes[name] = body
        return name

    def expand(self, command: RawCommand) -> RawCommand:
        """Expand a ``*name`` reference into the aliased command."""
        name = command.alias_ref or ""
        if name not in self.aliases:
            raise InvalidCommandError("Unknown alias", command.raw)
        expanded = classify(self.aliases[name], raw=command.raw)
        if expanded.alias_ref is not None:
            raise InvalidCommandError("Alias cannot reference another alias", command.raw)
        return expanded

    def resolve_call(self, command: RawCommand) -> str:
        """Return the code a CALL command runs."""
        name, _ = split_keyword(command.code)
        if name in self.nodes:
            return self.nodes[name]
        if name in self.aliases:
            return classify(self.aliases[name]).code
        raise InvalidCommandError("Unknown alias", command.raw)


@dataclass(eq=False)
class CommandNode:
    """A command in the linked tree.

    Attributes:
        command: The (alias-expanded) command
        anchor: Tree node holding the command
        expression: Code to evaluate (the iterable for FOR, the named code for CALL)
        variable: Loop variable name (FOR only)
        end_anchor: Tree node holding the matching END marker (blocks only)
        end_command: The matching END command (blocks only)
        children: Commands nested inside the block, in document order
    """

    command: RawCommand
    anchor: Node
    expression: str = ""
    variable: Optional[str] = None
    end_anchor: Optional[Node] = None
    end_command: Optional[RawCommand] = None
    children: List["CommandNode"] = field(default_factory=list)

    @property
    def type(self) -> CommandType:
        return self.command.type

    @property
    def raw(self) -> str:
        return self.command.raw

    def remap(self, mapping: Dict[int, Node]) -> "CommandNode":
        """Copy this subtree with anchors translated into a cloned tree."""
        return CommandNode(
            command=self.command,
            anchor=mapping.get(id(self.anchor), self.anchor),
            expression=self.expression,
            variable=self.variable,
            end_anchor=(
                mapping.get(id(self.end_anchor), self.end_anchor)
                if self.end_anchor is not None else None
            ),
            end_command=self.end_command,
            children=[child.remap(mapping) for child in self.children],
        )

    def walk(self) -> Iterator["CommandNode"]:
        """Iterate over this node and its descendants, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class CommandTree:
    """Linked commands of one template part."""

    roots: List[CommandNode] = field(default_factory=list)
    commands: List[RawCommand] = field(default_factory=list)

    def walk(self) -> Iterator[CommandNode]:
        for root in self.roots:
            yield from root.walk()

    def find_query(self) -> Optional[CommandNode]:
        """Return the first QUERY command, if any."""
        for node in self.walk():
            if node.type is CommandType.QUERY:
                return node
        return None

    def __len__(self) -> int:
        return len(self.commands)


def _check_end(frame: CommandNode, end: RawCommand) -> None:
    expected = BLOCK_CLOSERS[end.type]
    if frame.type is not expected:
        raise CommandSyntaxError(
            end.raw, f"Unexpected {end.type.value} (open block is {frame.type.value})"
        )
    if not end.code:
        return
    if end.type is CommandType.END_FOR and end.code.lstrip("$") != frame.variable:
        raise CommandSyntaxError(
            end.raw, f"{end.type.value} does not match FOR {frame.variable}"
        )
    if end.type is CommandType.END_IF and end.code != frame.command.code:
        raise CommandSyntaxError(end.raw, "END-IF does not match IF")


def link(scanned: List[ScannedCommand], aliases: Optional[AliasTable] = None) -> CommandTree:
    """Build the nested command tree.

    Args:
        scanned: Commands in document order, from the scanner
        aliases: Alias table to populate (shared between the parts of a document)

    Returns:
        Validated command tree

    Raises:
        CommandSyntaxError: For unmatched, crossed or unterminated blocks
        InvalidCommandError: For malformed commands and undefined aliases
    """
    aliases = aliases if aliases is not None else AliasTable()
    tree = CommandTree()
    stack: List[CommandNode] = []

    def attach(node: CommandNode) -> None:
        (stack[-1].children if stack else tree.roots).append(node)

    for item in scanned:
        command = item.command
        if command.alias_ref is not None:
            command = aliases.expand(command)
        tree.commands.append(command)

        if command.type in BLOCK_CLOSERS:
            if not stack:
                raise CommandSyntaxError(command.raw, f"Unexpected {command.type.value}")
            frame = stack.pop()
            _check_end(frame, command)
            frame.end_anchor = item.anchor
            frame.end_command = command
            continue

        node = CommandNode(command=command, anchor=item.anchor, expression=command.code)

        if command.type is CommandType.FOR:
            match = FOR_PATTERN.match(command.code)
            if not match:
                raise InvalidCommandError("Invalid FOR command", command.raw)
            node.variable = match.group(1).lstrip("$")
            node.expression = match.group(2).strip()
        elif command.type in (CommandType.ALIAS, CommandType.CMD_NODE):
            name = aliases.define(command)
            logger.debug(
                "Defined alias",
                extra={"alias": name, "kind": command.type.value},
            )
        elif command.type is CommandType.CALL:
            node.expression = aliases.resolve_call(command)

        attach(node)
        if command.is_block_opener:
            stack.append(node)

    if stack:
        raise CommandSyntaxError(stack[-1].raw, "Unterminated block")

    logger.debug(
        "Linked command tree",
        extra={"command_count": len(tree.commands), "root_count": len(tree.roots)},
    )
    return tree
