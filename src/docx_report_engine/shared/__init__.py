"""Shared utilities for docx report generation.

This module provides shared data structures, configuration objects, result types,
exceptions and logging used across all processing layers.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    DelimiterConfig,
    ErrorPolicyConfig,
    EvaluationConfig,
    OutputConfig,
    RunConfig,
)
from .exceptions import (
    CollectedCommandErrors,
    CommandExecutionError,
    CommandSyntaxError,
    ImageError,
    InternalError,
    InvalidCommandError,
    NullishCommandResultError,
    ObjectCommandResultError,
    ReportEngineError,
    TemplateParseError,
)
from .logging import (
    CorrelationLogger,
    get_logger,
    new_correlation_id,
)
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ReportMetrics,
    ReportResult,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "DelimiterConfig",
    "ErrorPolicyConfig",
    "EvaluationConfig",
    "OutputConfig",
    "RunConfig",
    "CollectedCommandErrors",
    "CommandExecutionError",
    "CommandSyntaxError",
    "ImageError",
    "InternalError",
    "InvalidCommandError",
    "NullishCommandResultError",
    "ObjectCommandResultError",
    "ReportEngineError",
    "TemplateParseError",
    "CorrelationLogger",
    "get_logger",
    "new_correlation_id",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "ReportMetrics",
    "ReportResult",
]
