"""Template processor.

Walks the linked command tree of each template part depth-first in document
order. Every command is evaluated (awaiting the evaluator where needed) and
its result handed to the mutator before the next command starts; FOR and IF
blocks control which nested commands run at all.
"""

import inspect
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from docx_report_engine.commands import (
    AliasTable,
    CommandNode,
    CommandTree,
    CommandType,
    link,
    scan_document,
)
from docx_report_engine.evaluation import Evaluator, ExecutionContext, to_bool, to_sequence
from docx_report_engine.mutation import ResourceRegistry, TreeMutator
from docx_report_engine.shared import (
    CommandExecutionError,
    CorrelationLogger,
    InternalError,
    ReportResult,
    RunConfig,
    get_logger,
)
from docx_report_engine.tree import NonTextNode

from .errors import ErrorCollector

# Commands removed without evaluating any code
_UNEVALUATED = frozenset({CommandType.QUERY, CommandType.ALIAS, CommandType.CMD_NODE})


@dataclass
class PreparedPart:
    """A template part whose commands are scanned and linked."""

    name: str
    root: NonTextNode
    tree: CommandTree
    registry: Optional[ResourceRegistry] = None


class TemplateProcessor:
    """Executes the commands of a template against one set of data.

    Args:
        config: Resolved run configuration
        result: Result receiving metrics and diagnostics
        logger: Correlation logger of the invocation
        evaluator: Evaluator to use (built from ``config`` by default)
    """

    def __init__(
        self,
        config: RunConfig,
        result: Optional[ReportResult] = None,
        logger: Optional[CorrelationLogger] = None,
        evaluator: Optional[Evaluator] = None,
    ) -> None:
        self.config = config
        self.result = result if result is not None else ReportResult(
            correlation_id=config.correlation_id
        )
        self.metrics = self.result.metrics
        self.logger = logger or get_logger(__name__, config.correlation_id, "processor")
        self.evaluator = evaluator or Evaluator(config.evaluation, self.logger.bind("evaluator"))
        self.errors = ErrorCollector(config.errors, self.result, self.logger.bind("errors"))
        self.aliases = AliasTable()

    def prepare(
        self,
        name: str,
        root: NonTextNode,
        registry: Optional[ResourceRegistry] = None,
    ) -> PreparedPart:
        """Scan and link one part.

        Parts must be prepared in document order (main document, headers,
        footers) since aliases are shared between them.

        Raises:
            CommandSyntaxError: For unterminated or unbalanced commands
            InvalidCommandError: For malformed commands
        """
        tree = link(scan_document(root, self.config.delimiters), self.aliases)
        self.metrics.commands_found += len(tree)
        self.logger.debug(
            "Prepared template part",
            extra={"part": name, "command_count": len(tree)},
        )
        return PreparedPart(name=name, root=root, tree=tree, registry=registry)

    async def resolve_data(
        self,
        data: Any,
        query_vars: Any = None,
        main: Optional[PreparedPart] = None,
    ) -> Any:
        """Produce the base data of the run.

        A callable ``data`` is a query resolver: it is called once with the
        code of the main document's first QUERY command (or None) and
        ``query_vars``, and awaited if it returns an awaitable.

        Raises:
            CommandExecutionError: If the resolver fails
        """
        if not callable(data):
            return data

        query = main.tree.find_query() if main is not None else None
        code = query.expression if query is not None and query.expression else None
        command = query.raw if query is not None else "QUERY"
        try:
            value = data(code, query_vars)
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            raise CommandExecutionError(e, command) from e

        self.logger.debug("Resolved query data", extra={"query": code})
        return value

    async def run(
        self,
        parts: List[PreparedPart],
        data: Any = None,
        query_vars: Any = None,
    ) -> ExecutionContext:
        """Execute every prepared part in order.

        Returns:
            The root execution context (holding the final sandbox)
        """
        start_time = time.time()
        base = await self.resolve_data(data, query_vars, parts[0] if parts else None)
        context = ExecutionContext(
            data=base,
            additional_context=self.config.evaluation.additional_context,
        )
        try:
            for part in parts:
                await self.process_part(part, context)
        finally:
            self.metrics.processing_time_ms += (time.time() - start_time) * 1000
        return context

    async def process_part(self, part: PreparedPart, context: ExecutionContext) -> None:
        """Execute the commands of one part, mutating its tree in place."""
        mutator = TreeMutator(self.config, part.registry, self.logger.bind("mutator"))
        await self._run_commands(part.tree.roots, context, mutator)

        self.metrics.parts_processed += 1
        self.metrics.images_added += mutator.images_added
        self.metrics.links_added += mutator.links_added
        self.logger.debug("Processed template part", extra={"part": part.name})

    async def _run_commands(
        self,
        nodes: List[CommandNode],
        context: ExecutionContext,
        mutator: TreeMutator,
    ) -> None:
        for node in nodes:
            await self._run_command(node, context, mutator)

    async def _run_command(
        self,
        node: CommandNode,
        context: ExecutionContext,
        mutator: TreeMutator,
    ) -> None:
        self.logger.command("Running command", node.raw, extra={"type": node.type.value})

        if node.type is CommandType.FOR:
            await self._run_for(node, context, mutator)
            return
        if node.type is CommandType.IF:
            await self._run_if(node, context, mutator)
            return
        if node.type in _UNEVALUATED:
            mutator.apply(node, None)
            return

        self.metrics.commands_executed += 1
        try:
            result = await self.evaluator.evaluate(node.expression, context, node.raw)
            mutator.apply(node, result)
        except CommandExecutionError as e:
            mutator.insert_text(node.anchor, self.errors.handle(e, node.raw))

    async def _evaluate_block(
        self,
        node: CommandNode,
        context: ExecutionContext,
        mutator: TreeMutator,
    ) -> Any:
        """Evaluate a block's expression; on error replace the whole block.

        Returns:
            The result, or None when the error policy substituted the block
        """
        self.metrics.commands_executed += 1
        try:
            value = await self.evaluator.evaluate(node.expression, context, node.raw)
            if node.type is CommandType.FOR:
                return to_sequence(value, node.raw)
            return to_bool(value)
        except CommandExecutionError as e:
            text = self.errors.handle(e, node.raw)
            parent, span = mutator.block_span(node)
            mutator.substitute_span(parent, span, text)
            return None

    async def _run_for(
        self,
        node: CommandNode,
        context: ExecutionContext,
        mutator: TreeMutator,
    ) -> None:
        items = await self._evaluate_block(node, context, mutator)
        if items is None:
            return

        parent, span = mutator.block_span(node)
        if not items:
            mutator.remove_span(parent, span)
            self.logger.command("Empty FOR block removed", node.raw)
            return
        if node.variable is None or node.end_anchor is None:
            raise InternalError(f"FOR block is not linked: {node.raw}")

        for index in range(len(items)):
            _, mapping = mutator.clone_span(span)
            start = mapping.get(id(node.anchor))
            end = mapping.get(id(node.end_anchor))
            if start is None or end is None:
                raise InternalError(f"FOR markers lie outside their block: {node.raw}")

            children = [child.remap(mapping) for child in node.children]
            mutator.remove_marker(start)
            mutator.remove_marker(end)
            await self._run_commands(
                children, context.with_loop(node.variable, items, index), mutator
            )
            self.metrics.loop_iterations += 1

        mutator.remove_span(parent, span)

    async def _run_if(
        self,
        node: CommandNode,
        context: ExecutionContext,
        mutator: TreeMutator,
    ) -> None:
        condition = await self._evaluate_block(node, context, mutator)
        if condition is None:
            return

        parent, span = mutator.block_span(node)
        if not condition:
            mutator.remove_span(parent, span)
            self.metrics.branches_removed += 1
            return

        for span_node in span:
            span_node.if_name = node.command.code
        if node.end_anchor is None:
            raise InternalError(f"IF block is not linked: {node.raw}")
        mutator.remove_marker(node.anchor)
        mutator.remove_marker(node.end_anchor)
        await self._run_commands(node.children, context, mutator)
