"""Expression evaluator.

Runs a command's code against the execution context through the configured
strategy. Awaiting the strategy's result is the one point where a run can
suspend; nothing else in the engine is asynchronous.
"""

import inspect
from typing import Any, Optional

from docx_report_engine.shared import (
    CommandExecutionError,
    CorrelationLogger,
    EvaluationConfig,
    get_logger,
)

from .code import fix_smart_quotes, strip_dollar_prefixes
from .context import ExecutionContext
from .strategies import EvaluationStrategy, create_strategy


class Evaluator:
    """Evaluate command code for one report invocation."""

    def __init__(
        self,
        config: EvaluationConfig,
        logger: Optional[CorrelationLogger] = None,
        strategy: Optional[EvaluationStrategy] = None,
    ) -> None:
        self.config = config
        self.strategy = strategy or create_strategy(config)
        self.logger = logger or get_logger(__name__, component="evaluator")
        self.evaluations = 0

    def prepare(self, code: str) -> str:
        """Clean up code as written in a word processor."""
        if self.config.fix_smart_quotes:
            code = fix_smart_quotes(code)
        return strip_dollar_prefixes(code).strip()

    async def evaluate(self, code: str, context: ExecutionContext, command: str) -> Any:
        """Evaluate ``code`` and await its result if needed.

        Args:
            code: Code to run
            context: Execution context; EXEC assignments are written back into
                its sandbox
            command: Raw command text, attached to errors

        Returns:
            The evaluated result

        Raises:
            CommandExecutionError: If the code fails to compile or run
        """
        prepared = self.prepare(code)
        self.evaluations += 1
        if not prepared:
            return None

        try:
            outcome = self.strategy.evaluate(
                prepared,
                dict(context.sandbox),
                context.namespace(),
                context.describe(),
            )
            result = outcome.result
            if inspect.isawaitable(result):
                result = await result
        except CommandExecutionError:
            raise
        except Exception as e:
            raise CommandExecutionError(e, command) from e

        context.sandbox.clear()
        context.sandbox.update(outcome.sandbox)
        self.logger.command(
            "Evaluated command",
            command,
            extra={"strategy": self.strategy.name, "result_type": type(result).__name__},
        )
        return result
