"""Execution context for command code.

The context layers, from lowest to highest precedence: the caller's
``additional_context``, the base data (a static mapping or the query
resolver's result), variables assigned by EXEC commands (the persisted
sandbox), and the loop variables of the enclosing FOR blocks.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence


@dataclass(frozen=True)
class LoopFrame:
    """One iteration of a FOR block."""

    variable: str
    items: Sequence[Any]
    index: int
    parent: Optional["LoopFrame"] = None

    @property
    def item(self) -> Any:
        return self.items[self.index]

    @property
    def length(self) -> int:
        return len(self.items)

    @property
    def first(self) -> bool:
        return self.index == 0

    @property
    def last(self) -> bool:
        return self.index == len(self.items) - 1

    @property
    def depth(self) -> int:
        return 1 if self.parent is None else self.parent.depth + 1

    def chain(self) -> List["LoopFrame"]:
        """Frames from the outermost loop to this one."""
        frames: List[LoopFrame] = []
        frame: Optional[LoopFrame] = self
        while frame is not None:
            frames.append(frame)
            frame = frame.parent
        return list(reversed(frames))


class ExecutionContext:
    """Data visible to the code of a command.

    ``sandbox`` is shared by every context derived from the same root, so an
    assignment made by EXEC inside a loop is visible to later commands.
    """

    def __init__(
        self,
        data: Any = None,
        additional_context: Optional[Mapping[str, Any]] = None,
        sandbox: Optional[Dict[str, Any]] = None,
        loop: Optional[LoopFrame] = None,
    ) -> None:
        self.data = data
        self.additional_context = dict(additional_context or {})
        self.sandbox: Dict[str, Any] = sandbox if sandbox is not None else {}
        self.loop = loop

    def with_loop(self, variable: str, items: Sequence[Any], index: int) -> "ExecutionContext":
        """Derive the context of one FOR iteration."""
        frame = LoopFrame(variable=variable, items=items, index=index, parent=self.loop)
        return ExecutionContext(self.data, self.additional_context, self.sandbox, frame)

    def namespace(self) -> Dict[str, Any]:
        """Flatten the layers into the names visible to command code."""
        names: Dict[str, Any] = dict(self.additional_context)
        if isinstance(self.data, Mapping):
            names.update(self.data)
        elif self.data is not None:
            names["data"] = self.data
        names.update(self.sandbox)
        if self.loop is not None:
            for frame in self.loop.chain():
                names[frame.variable] = frame.item
            names["idx"] = self.loop.index
            names["loop"] = self.loop
        return names

    def describe(self) -> Dict[str, Any]:
        """Context summary handed to custom evaluators."""
        return {
            "data": self.data,
            "additional_context": self.additional_context,
            "loop": self.loop,
            "sandbox_names": sorted(self.sandbox),
        }
