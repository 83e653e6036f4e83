"""Per-command error policy.

Structural errors never reach the collector; they abort the run where they
are raised. Command errors are routed here and either handed to the caller's
error handler, raised immediately (fail-fast) or recorded until the run ends.
"""

from typing import Any, List, Optional

from docx_report_engine.shared import (
    CollectedCommandErrors,
    CommandExecutionError,
    CorrelationLogger,
    DiagnosticSeverity,
    ErrorPolicyConfig,
    ReportEngineError,
    ReportResult,
    get_logger,
)


def substitute_text(value: Any) -> str:
    """Text inserted for an error handler's return value."""
    return "" if value is None else str(value)


class ErrorCollector:
    """Applies the error policy of one report invocation.

    Args:
        policy: Fail-fast, nullish and handler settings
        result: Result receiving diagnostics
        logger: Correlation logger of the invocation
    """

    def __init__(
        self,
        policy: ErrorPolicyConfig,
        result: Optional[ReportResult] = None,
        logger: Optional[CorrelationLogger] = None,
    ) -> None:
        self.policy = policy
        self.result = result if result is not None else ReportResult()
        self.logger = logger or get_logger(__name__, component="errors")
        self.errors: List[ReportEngineError] = []

    @staticmethod
    def wrap(error: BaseException, command: str) -> CommandExecutionError:
        """Attach the raw command to an error raised while running it."""
        if isinstance(error, CommandExecutionError):
            return error
        return CommandExecutionError(error, command)

    def handle(self, error: BaseException, command: str) -> str:
        """Resolve a command error into substitute text or raise it.

        An error handler, when configured, always decides the substitute,
        whatever the fail-fast setting.

        Returns:
            Text to insert in place of the command's output

        Raises:
            CommandExecutionError: Under fail-fast without an error handler
        """
        wrapped = self.wrap(error, command)

        handler = self.policy.error_handler
        if handler is not None:
            value = handler(wrapped, command)
            self.logger.warning(
                "Command error replaced by error handler",
                extra={"command": command, "error": str(wrapped)},
            )
            self.result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                str(wrapped),
                "errors",
                command=command,
                details={"handled": True},
            )
            return substitute_text(value)

        if self.policy.fail_fast:
            raise wrapped

        self.errors.append(wrapped)
        self.logger.warning(
            "Command error collected",
            extra={"command": command, "error": str(wrapped)},
        )
        self.result.add_diagnostic(
            DiagnosticSeverity.ERROR,
            str(wrapped),
            "errors",
            command=command,
            details={"error_type": type(wrapped.err).__name__},
        )
        return ""

    def raise_if_errors(self) -> None:
        """Raise the recorded errors together, if there are any.

        Raises:
            CollectedCommandErrors: If any command error was recorded
        """
        if self.errors:
            raise CollectedCommandErrors(self.errors)
