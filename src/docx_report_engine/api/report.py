"""Report generation API.

Module-level functions cover the common cases: ``create_report`` returns the
finished docx bytes, ``render_report`` also returns collected errors,
diagnostics and metrics. ``ReportGenerator`` keeps a resolved configuration
for repeated use. ``list_commands`` and ``get_metadata`` inspect a template
without rendering it.
"""

import asyncio
import dataclasses
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Union

from docx_report_engine.commands import CommandSummary, scan_document
from docx_report_engine.engine import ErrorCollector, PreparedPart, TemplateProcessor
from docx_report_engine.package import DocumentMetadata, DocxPackage, read_metadata
from docx_report_engine.shared import (
    ConfigValidationError,
    DelimiterConfig,
    ReportEngineError,
    ReportResult,
    RunConfig,
    get_logger,
    new_correlation_id,
)
from docx_report_engine.tree import NonTextNode, parse_xml, serialize

# Type definitions for template input
TemplateInput = Union[bytes, bytearray, str, Path, BinaryIO]

PROBE_TREE = "tree"
PROBE_XML = "xml"
PROBE_MODES = (PROBE_TREE, PROBE_XML)

MS_PER_SECOND = 1000


def read_template(template: TemplateInput) -> bytes:
    """Read template bytes from bytes, a path or a binary file object.

    Raises:
        TypeError: For unsupported input types
    """
    if isinstance(template, (bytes, bytearray)):
        return bytes(template)
    if isinstance(template, (str, Path)):
        return Path(template).read_bytes()
    if hasattr(template, "read"):
        return template.read()
    raise TypeError(f"Unsupported template type: {type(template).__name__}")


@dataclass
class _Rendering:
    """Intermediate state of a rendering, before the package is written."""

    result: ReportResult
    package: DocxPackage
    parts: List[PreparedPart]
    config: RunConfig
    errors: ErrorCollector

    @property
    def main_root(self) -> NonTextNode:
        return self.parts[0].root

    def write_package(self) -> bytes:
        literal = self.config.delimiters.literal_xml
        for part in self.parts:
            self.package.write(part.name, serialize(part.root, literal).encode("utf-8"))
        return self.package.to_bytes()


class ReportGenerator:
    """Report generator with a reusable configuration.

    Attributes:
        config: Resolved run configuration applied to every report
        report_count: Number of reports rendered by this instance

    Examples:
        Lenient generation with an error summary:
        >>> generator = ReportGenerator(RunConfig.lenient())
        >>> result = asyncio.run(generator.render(template, {"name": "Ada"}))
        >>> result.success
        True
    """

    def __init__(self, config: Optional[RunConfig] = None) -> None:
        self.config = config or RunConfig()
        self.report_count = 0
        self.logger = get_logger(__name__, self.config.correlation_id, "report_generator")

    def _resolve(self, options: dict) -> RunConfig:
        config = RunConfig.from_options(base=self.config, **options)
        if config.correlation_id is None:
            config = dataclasses.replace(config, correlation_id=new_correlation_id())
        return config

    async def _render(
        self,
        template: TemplateInput,
        data: Any,
        query_vars: Any,
        config: RunConfig,
    ) -> _Rendering:
        logger = get_logger(__name__, config.correlation_id, "report")
        result = ReportResult(correlation_id=config.correlation_id)
        start_time = time.time()

        logger.info(
            "Starting report generation",
            extra={
                "template_type": type(template).__name__,
                "data_is_resolver": callable(data),
            },
        )

        try:
            package = DocxPackage.from_bytes(read_template(template))
            processor = TemplateProcessor(config, result, logger.bind("processor"))

            parts = []
            for name in package.template_parts():
                root = parse_xml(package.read(name), name)
                package.observe_drawing_ids(root)
                parts.append(processor.prepare(name, root, package.resources_for(name)))

            await processor.run(parts, data, query_vars)
        except ReportEngineError:
            logger.exception("Report generation aborted")
            raise

        result.errors = list(processor.errors.errors)
        result.metrics.processing_time_ms = (time.time() - start_time) * MS_PER_SECOND
        self.report_count += 1

        logger.info("Report generation finished", extra=result.statistics)
        return _Rendering(
            result=result,
            package=package,
            parts=parts,
            config=config,
            errors=processor.errors,
        )

    async def create(
        self,
        template: TemplateInput,
        data: Any = None,
        query_vars: Any = None,
        probe: Optional[str] = None,
        **options: Any,
    ) -> Union[bytes, NonTextNode, str]:
        """Render a template into docx bytes.

        Args:
            template: Docx template (bytes, path or binary file)
            data: Data mapping, any object (bound as ``data``), or a query
                resolver ``(query, query_vars) -> data`` (may be async)
            query_vars: Passed to the query resolver
            probe: ``"tree"`` to return the processed main document tree,
                ``"xml"`` to return its XML text
            **options: Overrides of this generator's configuration

        Returns:
            Docx bytes, or the probe output

        Raises:
            CollectedCommandErrors: If command errors were collected
            ReportEngineError: For structural errors and fail-fast aborts
        """
        if probe is not None and probe not in PROBE_MODES:
            raise ConfigValidationError(
                f"Unknown probe mode: {probe}",
                field_name="probe",
                suggestions=list(PROBE_MODES),
            )
        rendering = await self._render(template, data, query_vars, self._resolve(options))
        rendering.errors.raise_if_errors()

        if probe == PROBE_TREE:
            return rendering.main_root
        if probe == PROBE_XML:
            return serialize(rendering.main_root, rendering.config.delimiters.literal_xml)
        return rendering.write_package()

    async def render(
        self,
        template: TemplateInput,
        data: Any = None,
        query_vars: Any = None,
        **options: Any,
    ) -> ReportResult:
        """Render a template, returning collected errors instead of raising them."""
        rendering = await self._render(template, data, query_vars, self._resolve(options))
        rendering.result.output = rendering.write_package()
        return rendering.result


async def create_report(
    template: TemplateInput,
    data: Any = None,
    query_vars: Any = None,
    **options: Any,
) -> Union[bytes, NonTextNode, str]:
    """Render a docx template with data.

    This is the primary entry point. Options are the flat keyword options
    of ``RunConfig.from_options`` plus ``probe``.

    Examples:
        >>> output = asyncio.run(create_report(template, {"name": "Ada"}))
        >>> output[:2]
        b'PK'
    """
    return await ReportGenerator().create(template, data, query_vars, **options)


def create_report_sync(
    template: TemplateInput,
    data: Any = None,
    query_vars: Any = None,
    **options: Any,
) -> Union[bytes, NonTextNode, str]:
    """Blocking wrapper around ``create_report``."""
    return asyncio.run(create_report(template, data, query_vars, **options))


async def render_report(
    template: TemplateInput,
    data: Any = None,
    query_vars: Any = None,
    **options: Any,
) -> ReportResult:
    """Render a docx template and return output, errors and metrics together."""
    return await ReportGenerator().render(template, data, query_vars, **options)


def list_commands(
    template: TemplateInput,
    delimiter: Optional[Union[str, List[str]]] = None,
) -> List[CommandSummary]:
    """List the commands of a template without executing them.

    Commands are listed in document order: main document, then headers,
    then footers. Blocks are not checked for balance.

    Args:
        template: Docx template
        delimiter: Command delimiter, a string or ``(start, end)`` pair

    Returns:
        One summary per command
    """
    delimiters = DelimiterConfig.from_option(delimiter)
    package = DocxPackage.from_bytes(read_template(template))

    summaries: List[CommandSummary] = []
    for name in package.template_parts():
        root = parse_xml(package.read(name), name)
        summaries.extend(
            scanned.command.to_summary() for scanned in scan_document(root, delimiters)
        )
    return summaries


def get_metadata(template: TemplateInput) -> DocumentMetadata:
    """Read document statistics and core properties of a docx file."""
    return read_metadata(DocxPackage.from_bytes(read_template(template)))
