"""Docx Report Engine.

Generates Word reports from ``.docx`` templates: commands embedded in the
template text (``+++INS name+++``, ``+++FOR item IN items+++`` ...) are
evaluated against caller-supplied data and the document is rewritten with
the results.

Progressive API Disclosure:
- Level 1: Simple functions - create_report(), create_report_sync(), render_report()
- Level 2: Configured generator - ReportGenerator class with a RunConfig
- Inspection: list_commands(), get_metadata()
"""

__version__ = "0.1.0"
__author__ = "Docx Report Engine Team"

# Level 1: Simple functions
# Level 2: Configured generator
from .api import (
    ReportGenerator,
    create_report,
    create_report_sync,
    get_metadata,
    list_commands,
    render_report,
)
from .commands import CommandSummary, CommandType
from .package import DocumentMetadata

# Configuration and results
from .shared import (
    CollectedCommandErrors,
    CommandExecutionError,
    CommandSyntaxError,
    ConfigError,
    ConfigValidationError,
    ImageError,
    InternalError,
    InvalidCommandError,
    NullishCommandResultError,
    ObjectCommandResultError,
    ReportEngineError,
    ReportResult,
    RunConfig,
    TemplateParseError,
)

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple functions
    "create_report",
    "create_report_sync",
    "render_report",
    "list_commands",
    "get_metadata",

    # Level 2: Configured generator
    "ReportGenerator",
    "RunConfig",

    # Result objects and data structures
    "CommandSummary",
    "CommandType",
    "DocumentMetadata",
    "ReportResult",

    # Errors
    "CollectedCommandErrors",
    "CommandExecutionError",
    "CommandSyntaxError",
    "ConfigError",
    "ConfigValidationError",
    "ImageError",
    "InternalError",
    "InvalidCommandError",
    "NullishCommandResultError",
    "ObjectCommandResultError",
    "ReportEngineError",
    "TemplateParseError",
]
