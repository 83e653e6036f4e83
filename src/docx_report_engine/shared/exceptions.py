"""Exception hierarchy for docx report generation.

Errors fall in two tiers. Structural errors (``TemplateParseError``,
``CommandSyntaxError``, ``InvalidCommandError``) make the template unusable and
always abort the run. Per-command errors (``CommandExecutionError`` and its
subclasses) are governed by the fail-fast policy.
"""

from typing import List, Optional


class ReportEngineError(Exception):
    """Base class for every error raised by the report engine."""


class TemplateParseError(ReportEngineError):
    """Raised when the template package or one of its XML parts is malformed."""


class InternalError(ReportEngineError):
    """Raised when an internal invariant of the engine is violated."""

    def __init__(self, message: str) -> None:
        super().__init__(f"INTERNAL ERROR: {message}")


class CommandSyntaxError(ReportEngineError):
    """Raised for unterminated delimiters and unbalanced or crossed blocks."""

    def __init__(self, command: str, message: Optional[str] = None) -> None:
        self.command = command
        super().__init__(
            f"{message}: {command}" if message else f"Invalid command syntax: {command}"
        )


class InvalidCommandError(ReportEngineError):
    """Raised for malformed commands and references to undefined aliases."""

    def __init__(self, message: str, command: str) -> None:
        self.command = command
        super().__init__(f"{message}: {command}")


class CommandExecutionError(ReportEngineError):
    """Wraps an error raised while evaluating or applying a single command."""

    def __init__(self, err: BaseException, command: str) -> None:
        self.err = err
        self.command = command
        super().__init__(
            f"Error executing command '{command}': "
            f"{type(err).__name__}: {err}"
        )


class NullishCommandResultError(CommandExecutionError):
    """Raised under ``reject_nullish`` when a command evaluates to ``None``."""

    def __init__(self, command: str) -> None:
        super().__init__(ValueError("Result of command is None"), command)


class ObjectCommandResultError(CommandExecutionError):
    """Raised when an INS result is a mapping or other structured object.

    Prevents a stringified ``{'a': 1}`` artifact from landing in the report.
    """

    def __init__(self, command: str, result_type: str = "object") -> None:
        super().__init__(
            TypeError(f"Result of command is a {result_type}, not a printable value"),
            command,
        )


class ImageError(CommandExecutionError):
    """Raised when an IMAGE command produces an unusable image descriptor."""


class CollectedCommandErrors(ReportEngineError):
    """Raised at the end of a collect-all run that recorded command errors."""

    def __init__(self, errors: List[ReportEngineError]) -> None:
        self.errors = list(errors)
        summary = "; ".join(str(error) for error in self.errors)
        super().__init__(f"{len(self.errors)} command error(s): {summary}")
